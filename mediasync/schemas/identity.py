"""Schemas describing identities, profiles and directory entries."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Authenticated user handle supplied by the identity service."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    display_name: str = ""
    avatar_url: str | None = None
    email: str | None = None

    @property
    def handle(self) -> str:
        if self.email and "@" in self.email:
            return self.email.split("@", 1)[0]
        return "user"


class ParticipantProfile(BaseModel):
    """Profile snapshot stored on a conversation for each participant."""

    model_config = ConfigDict(frozen=True)

    uid: str
    name: str
    avatar: str | None = None


class DirectoryEntry(BaseModel):
    """Read-only projection of a user profile returned by directory search."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    uid: str
    display_name: str
    photo_url: str | None = None
    email: str | None = None


class ProfileUpsertRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=150)
    email: str | None = None
    photo_url: str | None = None
    provider: str | None = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    uid: str
    display_name: str
    email: str | None = None
    photo_url: str | None = None
    provider: str | None = None
    created_at: datetime


__all__ = [
    "Identity",
    "ParticipantProfile",
    "DirectoryEntry",
    "ProfileUpsertRequest",
    "ProfileResponse",
]
