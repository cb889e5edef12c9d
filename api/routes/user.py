"""
api/routes/user.py -- Account and session REST endpoints.

Routes:
  POST /user/register                -- create an account; 201
  POST /user/login                   -- verify password; returns access + refresh tokens
  POST /user/refresh-token           -- exchange refresh token for a new access token
  POST /user/logout                  -- revoke the stored refresh token
  POST /user/upload-profile-picture  -- multipart image upload (<= MAX_UPLOAD_BYTES)
  GET  /user/profile-page/{user_id}  -- user profile (requires access token)

Errors:
  Handlers raise auth.errors.UserAuthError subclasses; the handler registered
  in api/main.py turns them into the shared ErrorResponse envelope with the
  status each error class carries. Handlers contain no status-code logic.

Bodies:
  JSON bodies are optional. An absent or null body is treated as {}, so a
  missing credential reaches the session manager and fails as MissingField or
  MissingToken rather than as a 422.

Security:
  Cache-Control: no-store on every response that carries a token.
  Profile responses never include password_hash or refresh_token.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from api.models import (
    AccessTokenResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProfilePictureResponse,
    ProfileResponse,
    RefreshTokenRequest,
    RegisterRequest,
    UserResponse,
)
from auth.dependencies import guard_profile_upload, require_access_token
from auth.errors import Forbidden
from auth.models import TokenPayload
from auth.profiles import attach_profile_picture, get_profile
from auth.sessions import SessionManager
from auth.store import UserStore

# Auth policy:
# - POST /user/register:               public
# - POST /user/login:                  public
# - POST /user/refresh-token:          public -- the refresh token is the credential
# - POST /user/logout:                 public -- the refresh token is the credential
# - POST /user/upload-profile-picture: access token when GUARD_PROFILE_UPLOAD (default on);
#                                      the token's username must match the form username
# - GET  /user/profile-page/{id}:      access token (require_access_token)
router = APIRouter()


def _no_store(content: dict, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


@router.post("/user/register", response_model=MessageResponse, status_code=201)
def register(request: Request, body: Optional[RegisterRequest] = None) -> MessageResponse:
    """Create an account. Registration does not log the user in."""
    body = body or RegisterRequest()
    sessions: SessionManager = request.app.state.sessions
    sessions.register(
        name=body.name,
        username=body.username,
        email=body.email,
        password=body.password,
        phone=body.phone,
        postal_code=body.postal_code,
    )
    return MessageResponse(message="User registered successfully.")


@router.post("/user/login", response_model=LoginResponse)
def login(request: Request, body: Optional[LoginRequest] = None) -> JSONResponse:
    """Authenticate with username and password; return both tokens.

    A successful login replaces any refresh token issued by an earlier login.
    """
    body = body or LoginRequest()
    sessions: SessionManager = request.app.state.sessions
    result = sessions.login(body.username, body.password)
    return _no_store(
        LoginResponse(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
        ).model_dump(by_alias=True)
    )


@router.post("/user/refresh-token", response_model=AccessTokenResponse)
def refresh_token(request: Request, body: Optional[RefreshTokenRequest] = None) -> JSONResponse:
    """Issue a new access token for a stored, unexpired refresh token."""
    body = body or RefreshTokenRequest()
    sessions: SessionManager = request.app.state.sessions
    access_token = sessions.refresh(body.refresh_token)
    return _no_store(AccessTokenResponse(access_token=access_token).model_dump(by_alias=True))


@router.post("/user/logout", response_model=MessageResponse)
def logout(request: Request, body: Optional[RefreshTokenRequest] = None) -> MessageResponse:
    """Revoke the refresh token. Access tokens already issued run to expiry."""
    body = body or RefreshTokenRequest()
    sessions: SessionManager = request.app.state.sessions
    sessions.logout(body.refresh_token)
    return MessageResponse(message="Logout successful.")


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.post("/user/upload-profile-picture", response_model=ProfilePictureResponse)
async def upload_profile_picture(
    request: Request,
    username: Optional[str] = Form(default=None),
    profile_picture: Optional[UploadFile] = File(default=None, alias="profilePicture"),
    caller: Optional[TokenPayload] = Depends(guard_profile_upload),
) -> ProfilePictureResponse:
    """Store an image (image/*, at most MAX_UPLOAD_BYTES) on the named user."""
    if caller is not None and username and caller.username != username:
        raise Forbidden()

    max_bytes: int = request.app.state.settings.max_upload_bytes
    data: bytes | None = None
    content_type: str | None = None
    if profile_picture is not None:
        # Read one byte past the cap so oversize uploads are detectable
        # without buffering the whole body.
        data = await profile_picture.read(max_bytes + 1)
        content_type = profile_picture.content_type

    user_store: UserStore = request.app.state.user_store
    user = attach_profile_picture(user_store, username, data, content_type, max_bytes)
    return ProfilePictureResponse(user=UserResponse.from_user(user))


@router.get("/user/profile-page/{user_id}", response_model=ProfileResponse)
def profile_page(
    request: Request,
    user_id: int,
    caller: TokenPayload = Depends(require_access_token),
) -> ProfileResponse:
    """Return the profile of any user to an authenticated caller."""
    user_store: UserStore = request.app.state.user_store
    return ProfileResponse(user=UserResponse.from_user(get_profile(user_store, user_id)))
