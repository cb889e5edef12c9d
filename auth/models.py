"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the
session manager do the work; api/models.py owns the HTTP representation.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ProfilePicture:
    """An uploaded image stored against a user record."""

    data: bytes
    content_type: str  # always "image/*"


@dataclass
class User:
    """A registered account.

    password_hash is the bcrypt hash; the plaintext is never kept.
    refresh_token is the single live refresh token for this account, or None
    when logged out. A new login overwrites it, which revokes the previous
    session's refresh token.

    id, created_at and updated_at are None before the record is written.
    """

    name: str
    username: str
    email: str
    phone: str
    postal_code: str
    password_hash: str
    id: int | None = None
    refresh_token: str | None = None
    profile_picture: ProfilePicture | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert
    updated_at: str | None = None  # ISO 8601, bumped by store on every update


@dataclass(frozen=True)
class TokenPayload:
    """Identity claims carried by access and refresh tokens."""

    id: int
    username: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> TokenPayload:
        return cls(id=user.id, username=user.username, email=user.email)

    def to_claims(self) -> dict:
        return {"id": self.id, "username": self.username, "email": self.email}
