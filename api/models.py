"""
API request and response models for UserAuth REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

JSON keys are camelCase (postalCode, refreshToken, accessToken) through a
camel alias generator; Python attributes stay snake_case.

Request fields are all Optional: a missing or empty field must produce the
session manager's 400 missing_field error, not FastAPI's 422.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import User


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(_CamelModel):
    """Request body for POST /user/register."""

    name: Optional[str] = Field(default=None, max_length=255)
    username: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=64)
    postal_code: Optional[str] = Field(default=None, max_length=32)


class LoginRequest(_CamelModel):
    """Request body for POST /user/login."""

    username: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class RefreshTokenRequest(_CamelModel):
    """Request body for POST /user/refresh-token and POST /user/logout."""

    refresh_token: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(_CamelModel):
    message: str


class LoginResponse(_CamelModel):
    message: str = "Login successful."
    access_token: str
    refresh_token: str


class AccessTokenResponse(_CamelModel):
    access_token: str


class ProfilePictureInfo(_CamelModel):
    """Metadata for a stored picture. The bytes themselves are not echoed."""

    content_type: str
    size: int


class UserResponse(_CamelModel):
    """Public view of a user record.

    password_hash and refresh_token are deliberately absent.
    """

    id: int
    name: str
    username: str
    email: str
    phone: str
    postal_code: str
    profile_picture: Optional[ProfilePictureInfo] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        picture = None
        if user.profile_picture is not None:
            picture = ProfilePictureInfo(
                content_type=user.profile_picture.content_type,
                size=len(user.profile_picture.data),
            )
        return cls(
            id=user.id,
            name=user.name,
            username=user.username,
            email=user.email,
            phone=user.phone,
            postal_code=user.postal_code,
            profile_picture=picture,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class ProfileResponse(_CamelModel):
    user: UserResponse


class ProfilePictureResponse(_CamelModel):
    message: str = "Profile picture updated successfully."
    user: UserResponse


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
