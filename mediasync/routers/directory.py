"""User directory and profile routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from ..database import SessionFactory, get_session_factory
from ..schemas import DirectoryEntry, Identity, ProfileResponse, ProfileUpsertRequest
from ..services import (
    AuthSession,
    ChangeHub,
    DirectorySearch,
    SessionKeyResolver,
    ensure_profile,
    get_change_hub,
    get_current_identity,
)

router = APIRouter(tags=["directory"])


@router.get("/directory", response_model=list[DirectoryEntry])
async def search_users(
    q: str = Query(default="", max_length=150),
    identity: Identity = Depends(get_current_identity),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> list[DirectoryEntry]:
    """Prefix lookup; debouncing is left to the client typing into the box."""

    auth = AuthSession(identity=identity)
    search = DirectorySearch(auth, session_factory, SessionKeyResolver(auth, session_factory, hub))
    return await search.search(q, identity.id)


@router.post("/profiles", response_model=ProfileResponse)
async def upsert_profile(
    payload: ProfileUpsertRequest,
    x_user_id: str | None = Header(default=None),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> ProfileResponse:
    """Store the caller's profile document the first time they sign in."""

    uid = (x_user_id or "").strip()
    if not uid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    identity = Identity(id=uid, display_name=payload.display_name, avatar_url=payload.photo_url, email=payload.email)
    with session_factory() as db:
        user = ensure_profile(db, identity, provider=payload.provider)
        return ProfileResponse.model_validate(user)


__all__ = ["router"]
