"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Session and route code never touches SQL directly.

Contract:
  find_by_field(field, value) -> User | None
  get_by_id(user_id)          -> User | None
  create_user(user)           -> User
  update_where(field, value, **patch) -> User | None

Absence is None, never an exception. Every other database failure surfaces
as auth.errors.StoreError whose detail is the SQLAlchemy exception class
name only. Rows can hold password hashes and tokens, and the raw driver
message may echo bound parameters, so it goes to the log and nowhere else.

Uniqueness:
  username and email carry named UNIQUE constraints. create_user() translates
  an IntegrityError on either into DuplicateUsername / DuplicateEmail. This is
  the authoritative conflict signal: two concurrent registrations that both
  pass the session manager's pre-check still cannot both insert.

Security:
  All queries use bound parameters. Column names used as lookup selectors
  come from _LOOKUP_FIELDS, never from raw input.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Index,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from auth.errors import DuplicateEmail, DuplicateUsername, StoreError
from auth.models import ProfilePicture, User

logger = logging.getLogger("userauth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("username", String(255), nullable=False),
    Column("email", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("phone", String(64), nullable=False),
    Column("postal_code", String(32), nullable=False),
    Column("refresh_token", Text),  # NULL when logged out
    Column("profile_picture", LargeBinary),
    Column("profile_picture_type", String(100)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    UniqueConstraint("username", name="uq_users_username"),
    UniqueConstraint("email", name="uq_users_email"),
    Index("ix_users_refresh_token", "refresh_token"),
)

# Columns that may be used as a lookup or update selector.
_LOOKUP_FIELDS: frozenset[str] = frozenset({"id", "username", "email", "refresh_token"})

# Columns update_where() may write. id and created_at are immutable.
_MUTABLE_FIELDS: frozenset[str] = frozenset(
    {"name", "email", "phone", "postal_code", "password_hash", "refresh_token", "profile_picture"}
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _store_error(action: str, exc: SQLAlchemyError) -> StoreError:
    logger.error("User store %s failed: %s", action, exc.__class__.__name__, exc_info=exc)
    return StoreError(detail=exc.__class__.__name__)


def _is_memory_url(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in db_url


def _check_field(field: str) -> None:
    if field not in _LOOKUP_FIELDS:
        raise ValueError(f"Unknown lookup field: {field!r}")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///userauth.db")
        user = store.create_user(User(name="Alice", username="alice", ...))
        store.find_by_field("email", "a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_url(db_url):
                # One connection for the engine's lifetime keeps the in-memory
                # database alive and visible to every thread.
                engine_kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, **engine_kwargs)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_field(self, field: str, value) -> User | None:
        """Return the user whose `field` equals `value`, or None.

        Raises ValueError for a field outside _LOOKUP_FIELDS.
        """
        _check_field(field)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(_users.c[field] == value)).fetchone()
        except SQLAlchemyError as exc:
            raise _store_error(f"lookup by {field}", exc) from exc
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        return self.find_by_field("id", user_id)

    def has_users(self) -> bool:
        """Return True if at least one user record exists."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        except SQLAlchemyError as exc:
            raise _store_error("count", exc) from exc
        return (result or 0) > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("User store ping failed", exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return the stored record.

        created_at and updated_at are both stamped with the insert time.

        Raises DuplicateEmail or DuplicateUsername when a unique constraint
        rejects the row. When both collide, the database reports whichever
        constraint it checked first; the session manager's pre-checks report
        email first in the common, non-racing case.
        """
        now = _now_iso()
        picture = user.profile_picture
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=user.name,
                        username=user.username,
                        email=user.email,
                        password_hash=user.password_hash,
                        phone=user.phone,
                        postal_code=user.postal_code,
                        refresh_token=user.refresh_token,
                        profile_picture=picture.data if picture else None,
                        profile_picture_type=picture.content_type if picture else None,
                        created_at=now,
                        updated_at=now,
                    )
                )
                user_id = result.inserted_primary_key[0]
                row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        except IntegrityError as exc:
            raise _integrity_to_conflict(exc) from exc
        except SQLAlchemyError as exc:
            raise _store_error("insert", exc) from exc
        return _row_to_user(row)

    def update_where(self, field: str, value, **patch) -> User | None:
        """Update the single record whose `field` equals `value`.

        The UPDATE repeats the selector in its WHERE clause alongside the id,
        so a record whose selector changed between the read and the write is
        left alone and reported as not found (compare-and-swap). updated_at is
        always bumped.

        patch keys are column names from _MUTABLE_FIELDS; profile_picture takes
        a ProfilePicture or None.

        Returns the updated User, or None when nothing matched.
        """
        _check_field(field)
        unknown = set(patch) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)!r}")

        values = dict(patch)
        if "profile_picture" in values:
            picture: ProfilePicture | None = values.pop("profile_picture")
            values["profile_picture"] = picture.data if picture else None
            values["profile_picture_type"] = picture.content_type if picture else None
        values["updated_at"] = _now_iso()

        try:
            with self.engine.begin() as conn:
                user_id = conn.execute(select(_users.c.id).where(_users.c[field] == value)).scalar()
                if user_id is None:
                    return None
                result = conn.execute(
                    _users.update().where((_users.c.id == user_id) & (_users.c[field] == value)).values(**values)
                )
                if result.rowcount == 0:
                    return None
                row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        except IntegrityError as exc:
            raise _integrity_to_conflict(exc) from exc
        except SQLAlchemyError as exc:
            raise _store_error(f"update by {field}", exc) from exc
        return _row_to_user(row)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Constraint translation
# ---------------------------------------------------------------------------


def _integrity_to_conflict(exc: IntegrityError) -> Exception:
    """Map a UNIQUE violation to the matching ConflictError.

    SQLite names the column ("UNIQUE constraint failed: users.email");
    PostgreSQL and MySQL name the constraint (uq_users_email). Matching the
    qualified forms keeps a conflicting value such as "myemail" from being
    mistaken for the column. Anything else becomes a StoreError.
    """
    message = str(exc.orig).lower()
    if "users.email" in message or "uq_users_email" in message:
        return DuplicateEmail()
    if "users.username" in message or "uq_users_username" in message:
        return DuplicateUsername()
    return _store_error("insert", exc)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    picture = None
    if row.profile_picture is not None:
        picture = ProfilePicture(data=bytes(row.profile_picture), content_type=row.profile_picture_type or "")
    return User(
        id=row.id,
        name=row.name,
        username=row.username,
        email=row.email,
        phone=row.phone,
        postal_code=row.postal_code,
        password_hash=row.password_hash,
        refresh_token=row.refresh_token,
        profile_picture=picture,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
