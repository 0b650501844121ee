"""
auth/errors.py -- Exception taxonomy for the token lifecycle.

Every reason a presented token can be refused derives from Unauthorized, so
the request gate can catch one class and answer with a single opaque 401.
The subclasses exist for logging and tests only -- they must never reach a
response body, or clients could probe why a token failed.

SigningError and IdentityLookupError are infrastructure failures, not the
caller's fault. They surface as 500s through the generic exception handler.

Layer rule: stdlib only.
"""

from __future__ import annotations


class TokenError(Exception):
    """Base class for token lifecycle failures."""


class Unauthorized(TokenError):
    """The presented token must not authenticate the request."""


class MalformedToken(Unauthorized):
    """The token cannot be parsed as a compact JWS with the expected claims."""


class InvalidSignature(Unauthorized):
    """The signature does not match the payload under the configured key."""


class ExpiredToken(Unauthorized):
    """The embedded expiry is at or before the current time."""


class RevokedToken(Unauthorized):
    """The token was explicitly revoked (logout or account deletion)."""


class UnknownSubject(Unauthorized):
    """The token's subject is absent from the user directory."""


class SigningError(TokenError):
    """Token encoding failed. Never caused by client input."""


class IdentityLookupError(Exception):
    """The user directory could not answer an existence query."""
