"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection feeds bcrypt 4.x a password longer than 72 bytes, which it rejects.

Every hash() call draws a fresh salt from bcrypt.gensalt(), so hashing the
same password twice yields two different strings that both verify. The work
factor comes from Settings.bcrypt_rounds (each step doubles the cost).

bcrypt only reads the first 72 bytes of its input. The password is first
reduced to the base64 form of its SHA-256 digest (44 ASCII bytes, no NULs),
so every byte of the password counts and no input is too long for bcrypt.
"""

from __future__ import annotations

import base64
import hashlib

import bcrypt


def _prehash(plain: str) -> bytes:
    return base64.b64encode(hashlib.sha256(plain.encode("utf-8")).digest())


class PasswordHasher:
    """Salted one-way hashing with a tunable work factor."""

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password."""
        return bcrypt.hashpw(_prehash(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        A malformed or empty hash verifies False rather than raising.
        """
        try:
            return bcrypt.checkpw(_prehash(plain), hashed.encode("utf-8"))
        except ValueError:
            return False
