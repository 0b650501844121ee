"""
auth/store.py -- SQLAlchemy Core persistence for accounts and vault blobs.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and service code never touches SQL directly.

UserStore doubles as the identity directory for TokenService: exists(email)
is the authoritative "does this token subject still exist?" check and is
re-run on every validation. Database errors there are wrapped in
IdentityLookupError so the token layer does not depend on SQLAlchemy.

Security:
  All queries use bound parameters. No f-strings in SQL.

DB path: configured via DATABASE_URL (core/config.py); the constructor
default is a SQLite file at the repository root.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy import exists as sql_exists
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import IdentityLookupError
from auth.models import User

logger = logging.getLogger("vaultsync.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'vaultsync.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("email", String(254), primary_key=True),
    Column("hashed_password", Text, nullable=False),  # bcrypt of the client-side hash
    Column("encrypted_data", Text, nullable=False, server_default=""),  # opaque vault blob
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so token validation reads don't block on vault writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records and their vault data.

    Usage:
        store = UserStore("sqlite:///vaultsync.db")
        store.create_user(User(email="a@x.com", hashed_password=hash_password(client_hash)))
        store.exists("a@x.com")    # True
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)
        logger.info("User store ready (%s)", self.engine.url.render_as_string(hide_password=True))

    # ------------------------------------------------------------------
    # Identity directory
    # ------------------------------------------------------------------

    def exists(self, email: str, issued_at: float | None = None) -> bool:
        """Return True if an account with this email is registered.

        With issued_at (a token's iat), the account must also have been
        created at or before that instant. A token issued to a deleted
        account is thereby refused after the email is registered again.

        Raises IdentityLookupError if the database cannot be queried.
        """
        try:
            with self.engine.connect() as conn:
                if issued_at is None:
                    return bool(conn.execute(select(sql_exists().where(_users.c.email == email))).scalar())
                created_at = conn.execute(select(_users.c.created_at).where(_users.c.email == email)).scalar()
        except SQLAlchemyError as exc:
            raise IdentityLookupError(f"user lookup failed: {exc}") from exc
        if created_at is None:
            return False
        return datetime.fromisoformat(created_at).timestamp() <= issued_at

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> None:
        """Insert a new account.

        Raises sqlalchemy.exc.IntegrityError if the email is already
        registered. POST /auth/register turns that into a 409.
        """
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    email=user.email,
                    hashed_password=user.hashed_password,
                    encrypted_data=user.encrypted_data,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
        logger.debug("Registered user %s", user.email)

    def get_by_email(self, email: str) -> User | None:
        """Look up an account by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_password(self, email: str, hashed_password: str) -> bool:
        """Replace the stored password digest. Returns False if email is unknown."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.email == email).values(hashed_password=hashed_password)
            )
            conn.commit()
        logger.info("Changed password for user %s", email)
        return result.rowcount > 0

    def delete_user(self, email: str) -> bool:
        """Permanently delete an account and its vault. Returns False if not found.

        Callers must revoke the presenting token first so a concurrent request
        carrying the same token cannot slip in between.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.email == email))
            conn.commit()
        logger.info("Deleted user %s", email)
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Vault data
    # ------------------------------------------------------------------

    def get_vault_data(self, email: str) -> str | None:
        """Return the encrypted vault blob, or None if the account is gone."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.encrypted_data).where(_users.c.email == email)).fetchone()
        return row.encrypted_data if row is not None else None

    def update_vault_data(self, email: str, encrypted_data: str) -> bool:
        """Overwrite the encrypted vault blob. Returns False if email is unknown."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.email == email).values(encrypted_data=encrypted_data)
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        email=row.email,
        hashed_password=row.hashed_password,
        encrypted_data=row.encrypted_data or "",
        created_at=row.created_at,
    )
