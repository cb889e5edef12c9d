"""
auth/profiles.py -- Profile picture attachment and profile lookup.

Upload validation runs before the store is touched:
  no payload          -> NoFileUploaded
  not image/*         -> UnsupportedMediaType
  larger than the cap -> FileTooLarge
  no username         -> MissingField
The picture then overwrites whatever the user had before.
"""

from __future__ import annotations

import logging

from auth.errors import FileTooLarge, MissingField, NoFileUploaded, UnsupportedMediaType, UserNotFound
from auth.models import ProfilePicture, User
from auth.store import UserStore

logger = logging.getLogger("userauth.profiles")

MAX_PICTURE_BYTES = 5 * 1024 * 1024  # 5 MiB


def validate_picture(data: bytes | None, content_type: str | None, max_bytes: int = MAX_PICTURE_BYTES) -> ProfilePicture:
    """Return a ProfilePicture, or raise the ValidationError describing the problem."""
    if not data:
        raise NoFileUploaded()
    if not content_type or not content_type.lower().startswith("image/"):
        raise UnsupportedMediaType()
    if len(data) > max_bytes:
        raise FileTooLarge(f"File must be {max_bytes} bytes or smaller.")
    return ProfilePicture(data=data, content_type=content_type)


def attach_profile_picture(
    store: UserStore,
    username: str | None,
    data: bytes | None,
    content_type: str | None,
    max_bytes: int = MAX_PICTURE_BYTES,
) -> User:
    """Store the picture on the user named `username` and return the updated user.

    Raises NoFileUploaded, UnsupportedMediaType, FileTooLarge, MissingField,
    UserNotFound or StoreError.
    """
    picture = validate_picture(data, content_type, max_bytes)
    if not username:
        raise MissingField("Username is required.")

    user = store.update_where("username", username, profile_picture=picture)
    if user is None:
        raise UserNotFound()
    logger.info("Profile picture updated for %s (%d bytes, %s)", username, len(picture.data), picture.content_type)
    return user


def get_profile(store: UserStore, user_id: int) -> User:
    """Raises UserNotFound when no user has this id."""
    user = store.get_by_id(user_id)
    if user is None:
        raise UserNotFound()
    return user
