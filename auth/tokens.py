"""
auth/tokens.py -- JWT signing and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (the account email), exp
       (UNIX seconds), iat (issue instant, fractional UNIX seconds) and jti
       (a per-issuance random value). The wire format is the standard compact
       JWS -- three dot-separated base64url segments -- so any client JWT
       library can read the claims.

  iat: lets the identity directory tell an account apart from a later one
       registered under the same email. A token issued before the current
       account was created belongs to a deleted predecessor.

  Verification order: structure first, then signature, then expiry. A token
       that cannot be parsed is MalformedToken; one that parses but fails the
       HMAC check is InvalidSignature; only a correctly signed token is ever
       reported as ExpiredToken. HMAC comparison happens inside python-jose
       (hmac.compare_digest), so timing does not leak key material.

  Expiry: jose's own exp check is disabled and replaced with a comparison
       against the signer's injected clock. That keeps "exp <= now is expired"
       exact (jose accepts exp == now) and lets tests simulate the passage of
       time without sleeping.

  SECRET_KEY: passed in by the caller (api/main.py reads it from Settings).
       Nothing here reads configuration at import time, so multiple signers
       with different keys can coexist in one process -- tests rely on that
       to forge tokens under a wrong key.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hashlib
import logging
import math
import secrets
import time
from collections.abc import Callable
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import ExpiredToken, InvalidSignature, MalformedToken, SigningError
from auth.models import Claims

logger = logging.getLogger("vaultsync.auth")

_ALGORITHM = "HS256"
_DEFAULT_TTL = 60 * 60  # 1 hour in seconds

# exp is checked against our own clock in verify(); see module docstring.
_DECODE_OPTIONS = {"verify_exp": False}


def fingerprint(token: str) -> str:
    """Return a short, non-reversible identifier for log lines.

    Bearer tokens are credentials and never appear in logs. The first 12 hex
    chars of SHA-256 are enough to correlate a revoke with later rejections.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


class TokenSigner:
    """Issues and verifies HS256 bearer tokens.

    Usage:
        signer = TokenSigner(settings.secret_key)
        token = signer.issue("alice@example.com")
        claims = signer.verify(token)      # raises Unauthorized subclasses
    """

    def __init__(
        self,
        secret_key: str,
        ttl_seconds: int = _DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._secret_key = secret_key
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def now(self) -> float:
        """Current time according to this signer's clock."""
        return self._clock()

    def issue(self, subject: str, ttl_seconds: int | None = None) -> str:
        """Sign a new token for subject, valid for ttl_seconds (default: signer TTL).

        Raises SigningError if encoding fails. That can only happen for a
        subject that is not JSON-serializable or a broken crypto backend;
        callers treat it as a server error.
        """
        duration = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        now = self._clock()
        payload = {
            "sub": subject,
            "exp": int(now) + duration,
            "iat": now,
            "jti": secrets.token_urlsafe(16),
        }
        try:
            return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)
        except (JWTError, TypeError, ValueError) as exc:
            logger.error("Token signing failed: %s", exc)
            raise SigningError("could not sign token") from exc

    def verify(self, token: str) -> Claims:
        """Verify signature and expiry; return the embedded Claims.

        Raises:
            MalformedToken:   not a compact JWS, or sub/exp missing or mistyped.
            InvalidSignature: HMAC mismatch or a header alg other than HS256.
            ExpiredToken:     exp <= now.
        """
        # Structure first, so a garbage string is never reported as a
        # signature failure.
        _parse_claims(_unverified_payload(token))
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM], options=_DECODE_OPTIONS)
        except JWTClaimsError as exc:
            raise MalformedToken(str(exc)) from exc
        except JWTError as exc:
            raise InvalidSignature(str(exc)) from exc

        claims = _parse_claims(payload)
        if claims.expiry <= self._clock():
            raise ExpiredToken(f"token expired at {claims.expiry}")
        return claims

    def expiry_of(self, token: str) -> int:
        """Return the exp claim without checking the signature.

        Used by revocation pruning, which only needs to know when a token
        stops mattering. Raises MalformedToken if the token cannot be parsed.
        """
        return _parse_claims(_unverified_payload(token)).expiry


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _unverified_payload(token: str) -> dict[str, Any]:
    if not isinstance(token, str) or token.count(".") != 2:
        raise MalformedToken("token must have three dot-separated segments")
    try:
        jwt.get_unverified_header(token)
        payload = jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise MalformedToken(str(exc)) from exc
    if not isinstance(payload, dict):
        raise MalformedToken("token payload is not a JSON object")
    return payload


def _parse_claims(payload: dict[str, Any]) -> Claims:
    subject = payload.get("sub")
    expiry = payload.get("exp")
    token_id = payload.get("jti")
    issued_at = payload.get("iat")
    if not isinstance(subject, str) or not subject:
        raise MalformedToken('token is missing the "sub" claim')
    # bool is an int subclass; true/false is never a valid timestamp.
    if isinstance(expiry, bool) or not isinstance(expiry, (int, float)) or not math.isfinite(expiry):
        raise MalformedToken('token is missing a numeric "exp" claim')
    if token_id is not None and not isinstance(token_id, str):
        raise MalformedToken('"jti" claim must be a string')
    if issued_at is not None and (
        isinstance(issued_at, bool) or not isinstance(issued_at, (int, float)) or not math.isfinite(issued_at)
    ):
        raise MalformedToken('"iat" claim must be a number')
    return Claims(subject=subject, expiry=int(expiry), token_id=token_id, issued_at=issued_at)
