"""Explicit auth session handed to the sync components, plus profile documents."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import SessionFactory, get_session_factory
from ..exceptions import TransientIOError, ValidationFailure
from ..models import User
from ..schemas import Identity

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuthSession:
    """The signed-in identity, shared by reference with every component.

    Created by :func:`sign_in` and cleared by :meth:`sign_out`; components
    only ever read it.
    """

    identity: Identity | None = None

    @property
    def signed_in(self) -> bool:
        return self.identity is not None

    def require_identity(self) -> Identity:
        if self.identity is None:
            raise ValidationFailure("Sign in required")
        return self.identity

    def sign_out(self) -> None:
        self.identity = None


def identity_from_user(user: User) -> Identity:
    return Identity(
        id=str(user.uid),
        display_name=str(user.display_name or ""),
        avatar_url=user.photo_url,
        email=user.email,
    )


def load_identity(db: Session, uid: str) -> Identity | None:
    user = db.get(User, uid)
    if user is None:
        return None
    return identity_from_user(user)


def ensure_profile(db: Session, identity: Identity, *, provider: str | None = None) -> User:
    """Create the profile document on first sign-in; existing profiles are left alone."""

    user = db.get(User, identity.id)
    if user is not None:
        return user

    user = User(
        uid=identity.id,
        display_name=identity.display_name or get_settings().placeholder_display_name,
        email=identity.email,
        photo_url=identity.avatar_url,
        provider=provider,
    )
    try:
        db.add(user)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise TransientIOError("Failed to store user profile") from exc

    db.refresh(user)
    logger.info("Created profile for %s (provider=%s)", identity.id, provider or "password")
    return user


def sign_in(session_factory: SessionFactory, identity: Identity, *, provider: str | None = None) -> AuthSession:
    with session_factory() as db:
        ensure_profile(db, identity, provider=provider)
    return AuthSession(identity=identity)


async def get_current_identity(
    x_user_id: str | None = Header(default=None),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> Identity:
    """Resolve the caller from the identity provider's ``X-User-Id`` header."""

    uid = (x_user_id or "").strip()
    if not uid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    with session_factory() as db:
        identity = load_identity(db, uid)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return identity


__all__ = [
    "AuthSession",
    "identity_from_user",
    "load_identity",
    "ensure_profile",
    "sign_in",
    "get_current_identity",
]
