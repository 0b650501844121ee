"""
auth/service.py -- Token lifecycle: issue, validate, revoke, sweep.

TokenService composes three collaborators:
  - TokenSigner        (auth/tokens.py)     -- crypto and expiry
  - RevocationStore    (auth/revocation.py) -- explicit invalidation
  - IdentityDirectory  (auth/store.py)      -- does the subject still exist?

validate() check order:
  1. Revocation set -- cheapest check, and a revoked token must fail even if
     everything else about it is fine.
  2. Signature, structure, expiry -- TokenSigner.verify().
  3. Subject existence -- re-checked on every call, never cached, so a
     deleted account's still-unexpired tokens stop working immediately.
     The directory also gets the token's iat: an account registered after
     the token was issued is a different account, even under the same email.

Every failure raises a subclass of Unauthorized. The gate collapses them all
into one 401; the subclass is for logs and tests only.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from typing import Protocol

from auth.errors import RevokedToken, UnknownSubject
from auth.models import Claims
from auth.revocation import RevocationStore
from auth.tokens import TokenSigner, fingerprint

logger = logging.getLogger("vaultsync.auth")


class IdentityDirectory(Protocol):
    """Anything that can answer "is this subject a registered account?".

    With issued_at set, the account must also have been registered at or
    before that instant.
    """

    def exists(self, subject: str, issued_at: float | None = None) -> bool: ...


class TokenService:
    """Issue/validate/revoke facade used by the HTTP layer and the scheduler.

    One instance per process, built in the app lifespan and shared through
    app.state -- the request gate and CleanupScheduler hold the same object,
    so they see the same revocation set.
    """

    def __init__(self, signer: TokenSigner, revocations: RevocationStore, directory: IdentityDirectory) -> None:
        self.signer = signer
        self.revocations = revocations
        self.directory = directory

    def issue_for_subject(self, subject: str) -> str:
        """Sign a token for subject.

        Does not check that the subject exists -- the login/register flow has
        just authenticated or created it.
        """
        token = self.signer.issue(subject)
        logger.debug("Issued token %s", fingerprint(token))
        return token

    def validate(self, token: str) -> Claims:
        """Return the token's Claims or raise an Unauthorized subclass."""
        if self.revocations.contains(token):
            raise RevokedToken("token has been revoked")

        claims = self.signer.verify(token)

        try:
            exists = self.directory.exists(claims.subject, issued_at=claims.issued_at)
        except Exception as exc:
            # Lookup failures deny access; retry policy belongs to the directory.
            logger.warning("Identity lookup failed during token validation: %s", exc)
            raise UnknownSubject("identity lookup failed") from exc
        if not exists:
            raise UnknownSubject("token subject no longer exists")
        return claims

    def revoke(self, token: str) -> None:
        """Invalidate token before its natural expiry (logout, account deletion)."""
        self.revocations.revoke(token)

    def sweep(self, now: float | None = None) -> int:
        """Prune revocation entries whose tokens have naturally expired.

        now defaults to the signer's clock. Returns the number of entries removed.
        """
        if now is None:
            now = self.signer.now()
        return self.revocations.prune(now)
