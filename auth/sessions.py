"""
auth/sessions.py -- Register / login / refresh / logout orchestration.

Per-user state machine:
    Anonymous --login--> Authenticated --refresh--> Authenticated
                                       --logout---> Anonymous

Single active session: the user record holds exactly one refresh token.
Login overwrites it, so the previous session's refresh token stops working
for both refresh and logout (neither finds a record storing it). Refresh
does not rotate the token; it stays valid until logout, the next login, or
its own expiry.

Check order matters and is part of the API contract:
  register: required fields -> email taken -> username taken -> insert
  refresh:  token present -> token stored on a record -> signature/expiry

Security:
  Timing equalization: login() runs bcrypt against a dummy hash when the
  username is unknown, so the response time of UnknownUser and
  InvalidPassword is the same.

  Tokens and passwords are never logged. Log lines name the username or id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from auth.errors import (
    DuplicateEmail,
    DuplicateUsername,
    InvalidOrExpiredToken,
    InvalidPassword,
    InvalidToken,
    MissingField,
    MissingToken,
    TokenError,
    UnknownToken,
    UnknownUser,
)
from auth.models import TokenPayload, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService

logger = logging.getLogger("userauth.sessions")


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    refresh_token: str
    user: User


class SessionManager:
    """Account and session lifecycle on top of the store, hasher and tokens.

    Usage:
        sessions = SessionManager(store, PasswordHasher(10), TokenService(settings))
        sessions.register("Alice", "alice", "a@x.com", "pw123", "555-0100", "12345")
        result = sessions.login("alice", "pw123")
        access = sessions.refresh(result.refresh_token)
        sessions.logout(result.refresh_token)
    """

    def __init__(self, store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        # Same cost as a real hash, computed once up front.
        self._dummy_hash = hasher.hash("userauth_timing_dummy")

    # ------------------------------------------------------------------
    # Register
    # ------------------------------------------------------------------

    def register(
        self,
        name: str | None,
        username: str | None,
        email: str | None,
        password: str | None,
        phone: str | None,
        postal_code: str | None,
    ) -> User:
        """Create an account. Returns the stored user; does not log in.

        Raises MissingField, DuplicateEmail, DuplicateUsername or StoreError.
        """
        if not all((name, username, email, password, phone, postal_code)):
            raise MissingField()

        if self.store.find_by_field("email", email) is not None:
            logger.info("Registration rejected: email already in use (username=%s)", username)
            raise DuplicateEmail()
        if self.store.find_by_field("username", username) is not None:
            logger.info("Registration rejected: username %s already in use", username)
            raise DuplicateUsername()

        # The store's unique constraints still reject a concurrent duplicate
        # that slipped in after the checks above.
        user = self.store.create_user(
            User(
                name=name,
                username=username,
                email=email,
                phone=phone,
                postal_code=postal_code,
                password_hash=self.hasher.hash(password),
            )
        )
        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, username: str | None, password: str | None) -> LoginResult:
        """Verify credentials, issue both tokens and persist the refresh token.

        Raises MissingField, UnknownUser, InvalidPassword or StoreError.
        """
        if not username or not password:
            raise MissingField()

        user = self.store.find_by_field("username", username)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.verify(password, self._dummy_hash)
            logger.info("Login failed: unknown username %s", username)
            raise UnknownUser()
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed: bad password for %s", username)
            raise InvalidPassword()

        payload = TokenPayload.from_user(user)
        access_token = self.tokens.create_access_token(payload)
        refresh_token = self.tokens.create_refresh_token(payload)

        updated = self.store.update_where("id", user.id, refresh_token=refresh_token)
        if updated is None:
            # Record vanished between lookup and write.
            raise UnknownUser()
        logger.info("User %s logged in (id=%s)", updated.username, updated.id)
        return LoginResult(access_token=access_token, refresh_token=refresh_token, user=updated)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, refresh_token: str | None) -> str:
        """Exchange a live refresh token for a new access token.

        Raises MissingToken, UnknownToken, InvalidOrExpiredToken or StoreError.
        """
        if not refresh_token:
            raise MissingToken()

        user = self.store.find_by_field("refresh_token", refresh_token)
        if user is None:
            logger.info("Refresh rejected: token not stored on any user")
            raise UnknownToken()

        try:
            payload = self.tokens.decode_refresh_token(refresh_token)
        except TokenError as exc:
            logger.info("Refresh rejected for user id=%s: %s", user.id, exc.__class__.__name__)
            raise InvalidOrExpiredToken() from exc

        return self.tokens.create_access_token(payload)

    # ------------------------------------------------------------------
    # Logout
    # ------------------------------------------------------------------

    def logout(self, refresh_token: str | None) -> User:
        """Clear the stored refresh token. Returns the logged-out user.

        Raises MissingToken, InvalidToken (400) or StoreError.
        """
        if not refresh_token:
            raise MissingToken()

        user = self.store.update_where("refresh_token", refresh_token, refresh_token=None)
        if user is None:
            logger.info("Logout rejected: token not stored on any user")
            raise InvalidToken("Invalid refresh token.", status_code=400)
        logger.info("User %s logged out (id=%s)", user.username, user.id)
        return user
