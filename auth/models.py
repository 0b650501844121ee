"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these only own the shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Claims:
    """The signed payload carried inside a token.

    expiry is a UNIX timestamp in whole seconds (the JWT "exp" claim).
    token_id is the per-issuance random "jti" value. It is informational:
    revocation is keyed by the full token string, not by this id.
    issued_at is the "iat" claim in fractional UNIX seconds.
    """

    subject: str
    expiry: int
    token_id: str | None = None
    issued_at: float | None = None


@dataclass
class User:
    """A registered vault owner.

    email doubles as the token subject. hashed_password is a bcrypt digest of
    the client-side password hash -- the plaintext password never reaches the
    server. encrypted_data is the opaque vault blob; the server cannot read it.
    """

    email: str
    hashed_password: str
    encrypted_data: str = ""
    created_at: str | None = None
