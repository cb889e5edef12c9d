"""
auth/dependencies.py -- FastAPI Depends() helpers for authorization.

require_access_token() is the Authorization Guard. It reads the
"authorization" header, verifies it as an access token and attaches the
recovered TokenPayload to request.state.user. It is stateless: no store
lookup, so a token stays usable until it expires even if the user logs out
(logout revokes the refresh token only).

The header value is used verbatim, as clients of this API have always sent
it. A leading "Bearer " scheme is also accepted and stripped.

guard_profile_upload() applies the guard only when
Settings.guard_profile_upload is on, and returns None otherwise.

Layer rule: may import from fastapi (Request) because this module is part of
the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import InvalidToken, NoToken, TokenError
from auth.models import TokenPayload
from auth.tokens import TokenService

_BEARER_PREFIX = "Bearer "


def _extract_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if header.startswith(_BEARER_PREFIX):
        header = header[len(_BEARER_PREFIX) :]
    return header.strip() or None


def require_access_token(request: Request) -> TokenPayload:
    """Reject the request unless it carries a valid access token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(caller: TokenPayload = Depends(require_access_token)): ...

    Raises NoToken (403) without a token, InvalidToken (403) when the token
    is forged, expired, or signed with the refresh secret.
    """
    token = _extract_token(request)
    if token is None:
        raise NoToken()

    tokens: TokenService = request.app.state.tokens
    try:
        payload = tokens.decode_access_token(token)
    except TokenError as exc:
        raise InvalidToken() from exc

    request.state.user = payload
    return payload


def guard_profile_upload(request: Request) -> TokenPayload | None:
    """Run require_access_token() when profile uploads are configured as protected."""
    if not request.app.state.settings.guard_profile_upload:
        return None
    return require_access_token(request)
