"""
auth/passwords.py -- bcrypt storage of client-side password hashes.

Clients never send a plaintext password. They derive a password hash locally
(the same secret also keys their vault encryption) and send that string. The
server stores bcrypt(SHA-256(client_hash)) so a leaked users table does not
hand out credentials that can be replayed directly.

The SHA-256 pre-digest keeps the bcrypt input at 44 bytes. bcrypt only reads
the first 72 bytes of its input and bcrypt 4.x+ rejects longer input
outright; client hash encodings (argon2 strings, hex digests) regularly
exceed that.

bcrypt is used directly rather than via passlib; passlib's wrap-bug probe
trips bcrypt 4.x's length check.
"""

from __future__ import annotations

import base64
import hashlib

import bcrypt


def _prehash(secret: str) -> bytes:
    return base64.b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


def hash_password(client_hash: str) -> str:
    """Return a bcrypt digest suitable for the users.hashed_password column."""
    return bcrypt.hashpw(_prehash(client_hash), bcrypt.gensalt()).decode("utf-8")


def verify_password(client_hash: str, hashed: str) -> bool:
    """Return True if client_hash matches the stored bcrypt digest."""
    try:
        return bcrypt.checkpw(_prehash(client_hash), hashed.encode("utf-8"))
    except ValueError:
        # Corrupt or non-bcrypt value in the column.
        return False


# Computed once at import so the first unknown-email login costs the same
# bcrypt work as every later one.
DUMMY_HASH: str = hash_password("vaultsync_timing_dummy")
