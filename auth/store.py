"""
auth/store.py -- The identity & directory store port and its SQL implementation.

DirectoryStore is the single seam between the services and the identity
provider. It covers both halves of the provider:

  accounts -- credential storage and password verification (the provider's
              own auth service). Raw passwords go in, ids come out.
  records  -- the mirrored directory table the services list, filter and
              mutate.

Implementations signal failures with the structured StoreError kinds below
instead of provider-specific messages, so services never parse error text.

SqlDirectoryStore is the SQLAlchemy Core implementation. It emulates the
provider with two tables and backs local development and the test suite.
The hosted provider adapter lives in auth/supabase_store.py.

Pattern: Repository + Data Mapper. _row_to_user is the mapper; service code
never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Search terms are LIKE-escaped (autoescape=True) so % and _ match literally.

Layer rule: no imports from api/ or directory/.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Protocol

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, func, or_, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import ROLE_PHOTOGRAPHER, DirectoryUser
from auth.tokens import hash_password, verify_password

logger = logging.getLogger("portfolio.store")


# ---------------------------------------------------------------------------
# Structured error kinds
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """Base class for failures reported by a DirectoryStore."""


class DuplicateEmailError(StoreError):
    """An account or record with this email already exists."""


class RecordNotFoundError(StoreError):
    """No account or record exists for the given id."""


class InvalidCredentialsError(StoreError):
    """The provider rejected the email/password pair.

    Deliberately carries no detail about which half was wrong.
    """


# ---------------------------------------------------------------------------
# Query shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserQuery:
    """Filter and pagination for query_records().

    role   -- exact match when set.
    search -- case-insensitive substring, OR-ed across first_name, last_name
              and email.
    Results are always ordered newest-created first.
    """

    page: int = 1
    limit: int = 10
    role: str | None = None
    search: str | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class UserPage:
    users: list[DirectoryUser] = field(default_factory=list)
    total: int = 0


# ---------------------------------------------------------------------------
# Port
# ---------------------------------------------------------------------------


class DirectoryStore(Protocol):
    """Identity & directory capability consumed by the auth and directory services."""

    def create_account(self, email: str, password: str, metadata: dict) -> str:
        """Create a provider account and return its id. Raises DuplicateEmailError."""
        ...

    def authenticate(self, email: str, password: str) -> str:
        """Verify credentials and return the account id. Raises InvalidCredentialsError."""
        ...

    def update_account_password(self, account_id: str, password: str) -> None: ...

    def delete_account(self, account_id: str) -> None: ...

    def create_record(self, user: DirectoryUser) -> DirectoryUser:
        """Insert a directory record. Raises DuplicateEmailError."""
        ...

    def get_record(self, user_id: str) -> DirectoryUser:
        """Return the record. Raises RecordNotFoundError."""
        ...

    def update_record(self, user_id: str, **fields) -> DirectoryUser:
        """Apply fields and return the updated record. Raises RecordNotFoundError."""
        ...

    def delete_record(self, user_id: str) -> None:
        """Remove the record. Raises RecordNotFoundError."""
        ...

    def query_records(self, query: UserQuery) -> UserPage: ...

    def list_roles(self) -> list[str]:
        """Return the role of every record (one entry per record)."""
        ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

# Provider side: credentials the provider verifies at login.
_accounts = Table(
    "accounts",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("user_metadata", Text),  # JSON blob: first_name, last_name, role
    Column("created_at", String(32), nullable=False),
)

# Directory side: the mirrored user records.
_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("role", String(30), nullable=False, server_default=ROLE_PHOTOGRAPHER),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Columns update_record() accepts. id, email and created_at are immutable.
_MUTABLE_FIELDS = frozenset({"first_name", "last_name", "role", "password_hash"})


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@lru_cache
def _dummy_hash() -> str:
    """Hash at the configured cost, computed once, for timing equalization.

    authenticate() always runs one bcrypt check so response time does not
    reveal whether an account exists for the email.
    """
    return hash_password("portfolio_timing_dummy")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SqlDirectoryStore:
    """DirectoryStore backed by any SQLAlchemy-supported database.

    Usage:
        store = SqlDirectoryStore("sqlite:///:memory:")
        account_id = store.create_account("ada@example.com", "secret1", {})
        store.create_record(DirectoryUser(id=account_id, email="ada@example.com", ...))
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Accounts (provider credential side)
    # ------------------------------------------------------------------

    def create_account(self, email: str, password: str, metadata: dict) -> str:
        account_id = str(uuid.uuid4())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _accounts.insert().values(
                        id=account_id,
                        email=email.lower(),
                        password_hash=hash_password(password),
                        user_metadata=json.dumps(metadata),
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(f"An account for {email} is already registered.") from exc
        return account_id

    def authenticate(self, email: str, password: str) -> str:
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == email.lower())).fetchone()
        if row is None:
            # Equalize timing -- do NOT return early before running bcrypt.
            verify_password(password, _dummy_hash())
            raise InvalidCredentialsError("Invalid login credentials.")
        if not verify_password(password, row.password_hash):
            raise InvalidCredentialsError("Invalid login credentials.")
        return row.id

    def update_account_password(self, account_id: str, password: str) -> None:
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values(password_hash=hash_password(password))
            )
            conn.commit()
        if result.rowcount == 0:
            raise RecordNotFoundError(f"Account {account_id} not found.")

    def delete_account(self, account_id: str) -> None:
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.delete().where(_accounts.c.id == account_id))
            conn.commit()
        if result.rowcount == 0:
            raise RecordNotFoundError(f"Account {account_id} not found.")

    # ------------------------------------------------------------------
    # Directory records
    # ------------------------------------------------------------------

    def create_record(self, user: DirectoryUser) -> DirectoryUser:
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user.id,
                        email=user.email.lower(),
                        password_hash=user.password_hash,
                        first_name=user.first_name,
                        last_name=user.last_name,
                        role=user.role,
                        created_at=user.created_at or now,
                        updated_at=user.updated_at or now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(f"A user with email {user.email} already exists.") from exc
        return self.get_record(user.id)

    def get_record(self, user_id: str) -> DirectoryUser:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        if row is None:
            raise RecordNotFoundError(f"User {user_id} not found.")
        return _row_to_user(row)

    def update_record(self, user_id: str, **fields) -> DirectoryUser:
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown or immutable user fields: {unknown!r}")
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(updated_at=_now_iso(), **fields)
            )
            conn.commit()
        if result.rowcount == 0:
            raise RecordNotFoundError(f"User {user_id} not found.")
        return self.get_record(user_id)

    def delete_record(self, user_id: str) -> None:
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        if result.rowcount == 0:
            raise RecordNotFoundError(f"User {user_id} not found.")

    def query_records(self, query: UserQuery) -> UserPage:
        conditions = []
        if query.role:
            conditions.append(_users.c.role == query.role)
        if query.search:
            conditions.append(
                or_(
                    _users.c.first_name.icontains(query.search, autoescape=True),
                    _users.c.last_name.icontains(query.search, autoescape=True),
                    _users.c.email.icontains(query.search, autoescape=True),
                )
            )

        page_stmt = (
            _users.select()
            .where(*conditions)
            .order_by(_users.c.created_at.desc(), _users.c.id)
            .limit(query.limit)
            .offset(query.offset)
        )
        count_stmt = select(func.count()).select_from(_users).where(*conditions)

        with self.engine.connect() as conn:
            rows = conn.execute(page_stmt).fetchall()
            total = conn.execute(count_stmt).scalar()
        return UserPage(users=[_row_to_user(r) for r in rows], total=total or 0)

    def list_roles(self) -> list[str]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(_users.c.role)).fetchall()
        return [r.role for r in rows]

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Directory database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> DirectoryUser:
    return DirectoryUser(
        id=row.id,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        role=row.role,
        password_hash=row.password_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
