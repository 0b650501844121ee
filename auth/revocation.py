"""
auth/revocation.py -- In-memory set of revoked bearer tokens.

Keyed by the literal token string: any bit-identical resubmission of a
revoked token is refused, even before its natural expiry. Tokens are stored
as opaque strings -- revoke() never parses them. prune() re-reads each
token's exp through the injected expiry reader and drops entries that can no
longer authenticate anyone anyway.

Concurrency: one threading.Lock serializes every read and write. Request
handlers call contains() from FastAPI's threadpool while the cleanup task
calls prune() from the event loop; holding the same lock for both is what
makes revoke-then-validate linearizable. No negative lookup cache is kept.

Single-process only. Revocations are lost on restart, so a token revoked
before a restart is accepted again until its exp passes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from auth.errors import MalformedToken
from auth.tokens import fingerprint

logger = logging.getLogger("vaultsync.revocation")


class RevocationStore:
    """Thread-safe revoked-token set with expiry-based pruning.

    Usage:
        store = RevocationStore(expiry_of=signer.expiry_of)
        store.revoke(token)
        store.contains(token)      # True
        store.prune(time.time())   # drops entries whose exp has passed
    """

    def __init__(self, expiry_of: Callable[[str], int]) -> None:
        self._expiry_of = expiry_of
        self._revoked: set[str] = set()
        self._lock = threading.Lock()

    def contains(self, token: str) -> bool:
        with self._lock:
            return token in self._revoked

    def revoke(self, token: str) -> None:
        """Mark token as revoked. Re-revoking is a no-op, not an error."""
        with self._lock:
            already = token in self._revoked
            self._revoked.add(token)
            size = len(self._revoked)
        if already:
            logger.debug("Token %s was already revoked", fingerprint(token))
        else:
            logger.debug("Revoked token %s (store size %d)", fingerprint(token), size)

    def prune(self, now: float) -> int:
        """Remove entries whose exp <= now, and entries that fail to parse.

        An entry still inside its validity window is never removed: dropping
        it would re-admit a revoked token. Returns the number removed.
        """
        with self._lock:
            stale = [token for token in self._revoked if self._is_stale(token, now)]
            self._revoked.difference_update(stale)
            remaining = len(self._revoked)
        logger.debug("Revocation prune removed %d entries, %d remain", len(stale), remaining)
        return len(stale)

    def _is_stale(self, token: str, now: float) -> bool:
        try:
            return self._expiry_of(token) <= now
        except MalformedToken:
            # An unparseable token can never validate; keeping it buys nothing.
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and self.contains(token)
