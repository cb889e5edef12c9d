"""
auth/tokens.py -- JWT issue and verification for access and refresh tokens.

Security design decisions:
  JWT: python-jose with HS256. A token carries the identity payload
       (id, username, email) plus iat, exp and a random jti. The jti makes two
       tokens issued for the same user within the same second distinct, which
       single-session revocation depends on: a second login must produce a
       refresh token that differs from the first.

  Two secrets: access tokens are signed with ACCESS_TOKEN_SECRET and refresh
       tokens with REFRESH_TOKEN_SECRET. Settings rejects identical values, so
       a token of one kind never verifies as the other.

  Verification raises rather than returning None: callers need to tell an
       expired token from a forged one (TokenExpired vs InvalidSignature), and
       each flow maps both onto its own API error.

Layer rule: no imports from api/. Settings are passed in, never read from
module-level state.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from auth.errors import InvalidSignature, TokenExpired
from auth.models import TokenPayload

if TYPE_CHECKING:
    from core.config import Settings

_ALGORITHM = "HS256"

# Claims added by issue_token() and stripped again by verify_token().
_REGISTERED_CLAIMS = ("iat", "exp", "jti")

# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_token(payload: dict, secret: str, ttl_seconds: int, now: datetime | None = None) -> str:
    """Encode a signed JWT carrying `payload` that expires `ttl_seconds` after `now`.

    Args:
        payload:     Identity claims. Must not use iat, exp or jti.
        secret:      HS256 signing key.
        ttl_seconds: Token lifetime.
        now:         Issue time; defaults to the current UTC time.
    """
    issued_at = now or datetime.now(timezone.utc)
    claims = dict(payload)
    claims.update(
        {
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=ttl_seconds),
            "jti": uuid.uuid4().hex,
        }
    )
    return jwt.encode(claims, secret, algorithm=_ALGORITHM)


def verify_token(token: str, secret: str) -> dict:
    """Verify signature and expiry; return the payload passed to issue_token().

    Raises:
        TokenExpired:     the signature is valid but exp has passed.
        InvalidSignature: wrong secret, tampered or malformed token.
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpired(str(exc)) from exc
    except JWTError as exc:
        raise InvalidSignature(str(exc)) from exc
    for claim in _REGISTERED_CLAIMS:
        claims.pop(claim, None)
    return claims


def _to_payload(claims: dict) -> TokenPayload:
    try:
        return TokenPayload(id=claims["id"], username=claims["username"], email=claims["email"])
    except KeyError as exc:
        raise InvalidSignature(f"missing claim {exc.args[0]!r}") from exc


# ---------------------------------------------------------------------------
# Settings-bound service
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies the two token kinds with secrets taken from Settings.

    Usage:
        tokens = TokenService(settings)
        access = tokens.create_access_token(TokenPayload.from_user(user))
        payload = tokens.decode_access_token(access)
    """

    def __init__(self, settings: Settings) -> None:
        self._access_secret = settings.access_token_secret
        self._refresh_secret = settings.refresh_token_secret
        self.access_ttl = settings.access_token_expire_seconds
        self.refresh_ttl = settings.refresh_token_expire_seconds

    def create_access_token(self, payload: TokenPayload) -> str:
        return issue_token(payload.to_claims(), self._access_secret, self.access_ttl)

    def create_refresh_token(self, payload: TokenPayload) -> str:
        return issue_token(payload.to_claims(), self._refresh_secret, self.refresh_ttl)

    def decode_access_token(self, token: str) -> TokenPayload:
        """Raises TokenError if the token is not a valid, unexpired access token."""
        return _to_payload(verify_token(token, self._access_secret))

    def decode_refresh_token(self, token: str) -> TokenPayload:
        """Raises TokenError if the token is not a valid, unexpired refresh token."""
        return _to_payload(verify_token(token, self._refresh_secret))
