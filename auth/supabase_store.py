"""
auth/supabase_store.py -- DirectoryStore adapter for a hosted Supabase project.

Two Supabase surfaces are used:

  GoTrue (auth)   -- accounts. Created and deleted through the admin API with
                     the service-role key; verified with sign_in_with_password.
  PostgREST (db)  -- the directory table (SUPABASE_USERS_TABLE, default
                     "users") holding the mirrored records.

Error translation happens here and only here. Services receive the structured
kinds from auth/store.py:

  AuthApiError code email_exists / user_already_exists  -> DuplicateEmailError
  PostgREST code 23505 (unique_violation)                -> DuplicateEmailError
  empty result on a single-row read/update/delete        -> RecordNotFoundError
  any AuthError from sign_in_with_password               -> InvalidCredentialsError

Every other provider exception propagates unchanged.

Session isolation:
  sign_in_with_password stores the signed-in user's session on the client it
  is called on. Running it on the shared service-role client would make every
  later table call execute as that end user. authenticate() therefore signs in
  on a throwaway client with session persistence disabled.

Layer rule: no imports from api/ or directory/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from supabase import AuthApiError, AuthError, Client, ClientOptions, PostgrestAPIError, create_client

from auth.models import DirectoryUser
from auth.store import (
    DuplicateEmailError,
    InvalidCredentialsError,
    RecordNotFoundError,
    UserPage,
    UserQuery,
)

logger = logging.getLogger("portfolio.store")

_DUPLICATE_AUTH_CODES = frozenset({"email_exists", "user_already_exists"})
_UNIQUE_VIOLATION = "23505"

# PostgREST caps unbounded selects (1000 rows by default); list_roles() pages
# through the table in chunks of this size.
_SCAN_CHUNK = 1000

_RECORD_COLUMNS = "id,email,password_hash,first_name,last_name,role,created_at,updated_at"


def _session_free_options() -> ClientOptions:
    return ClientOptions(persist_session=False, auto_refresh_token=False)


def _quote_filter_value(value: str) -> str:
    """Quote a value for a PostgREST logic-tree filter (or=(...)).

    Two layers of escaping apply, innermost first:

      LIKE    -- backslash, %, _ and * (PostgREST's alias for %) get a
                 backslash so the term matches literally, as in
                 SqlDirectoryStore's autoescape.
      quoting -- commas, dots, colons and parentheses are reserved inside
                 or=(); the value is wrapped in double quotes, and
                 backslashes and quotes inside it are escaped.
    """
    pattern = value.replace("\\", "\\\\")
    for wildcard in ("%", "_", "*"):
        pattern = pattern.replace(wildcard, "\\" + wildcard)
    quoted = pattern.replace("\\", "\\\\").replace('"', '\\"')
    return f'"*{quoted}*"'


class SupabaseDirectoryStore:
    """DirectoryStore over the Supabase Python client.

    Args:
        url:            Project URL (https://<ref>.supabase.co).
        service_key:    Service-role key. Required for the admin auth API.
        table:          Directory table name.
        client:         Pre-built client (tests inject a MagicMock here).
        client_factory: Builds the throwaway sign-in clients; defaults to
                        supabase.create_client.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        table: str = "users",
        client: Client | None = None,
        client_factory: Callable[..., Client] | None = None,
    ) -> None:
        self._url = url
        self._key = service_key
        self._table = table
        self._client_factory = client_factory or create_client
        self._client: Client = client or self._client_factory(url, service_key, options=_session_free_options())
        logger.info("Supabase directory store initialized (table=%s)", table)

    def _records(self):
        return self._client.table(self._table)

    # ------------------------------------------------------------------
    # Accounts (GoTrue)
    # ------------------------------------------------------------------

    def create_account(self, email: str, password: str, metadata: dict) -> str:
        try:
            response = self._client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": metadata,
                }
            )
        except AuthApiError as exc:
            if exc.code in _DUPLICATE_AUTH_CODES:
                raise DuplicateEmailError(f"An account for {email} is already registered.") from exc
            raise
        if response.user is None:
            raise RuntimeError("Supabase returned no user for create_user.")
        return response.user.id

    def authenticate(self, email: str, password: str) -> str:
        client = self._client_factory(self._url, self._key, options=_session_free_options())
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as exc:
            raise InvalidCredentialsError("Invalid login credentials.") from exc
        if response.user is None:
            raise InvalidCredentialsError("Invalid login credentials.")
        return response.user.id

    def update_account_password(self, account_id: str, password: str) -> None:
        self._client.auth.admin.update_user_by_id(account_id, {"password": password})

    def delete_account(self, account_id: str) -> None:
        self._client.auth.admin.delete_user(account_id)

    # ------------------------------------------------------------------
    # Directory records (PostgREST)
    # ------------------------------------------------------------------

    def create_record(self, user: DirectoryUser) -> DirectoryUser:
        payload = {
            "id": user.id,
            "email": user.email,
            "password_hash": user.password_hash,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role,
        }
        try:
            response = self._records().insert(payload).execute()
        except PostgrestAPIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise DuplicateEmailError(f"A user with email {user.email} already exists.") from exc
            raise
        if not response.data:
            raise RuntimeError("Supabase returned no row for insert.")
        return _row_to_user(response.data[0])

    def get_record(self, user_id: str) -> DirectoryUser:
        response = self._records().select(_RECORD_COLUMNS).eq("id", user_id).maybe_single().execute()
        # maybe_single() yields None (newer postgrest) or empty data (older) for no row.
        if response is None or not response.data:
            raise RecordNotFoundError(f"User {user_id} not found.")
        return _row_to_user(response.data)

    def update_record(self, user_id: str, **fields) -> DirectoryUser:
        payload = {**fields, "updated_at": datetime.now(timezone.utc).isoformat()}
        response = self._records().update(payload).eq("id", user_id).execute()
        if not response.data:
            raise RecordNotFoundError(f"User {user_id} not found.")
        return _row_to_user(response.data[0])

    def delete_record(self, user_id: str) -> None:
        response = self._records().delete().eq("id", user_id).execute()
        if not response.data:
            raise RecordNotFoundError(f"User {user_id} not found.")

    def query_records(self, query: UserQuery) -> UserPage:
        builder = self._records().select(_RECORD_COLUMNS, count="exact")
        if query.role:
            builder = builder.eq("role", query.role)
        if query.search:
            term = _quote_filter_value(query.search)
            builder = builder.or_(f"first_name.ilike.{term},last_name.ilike.{term},email.ilike.{term}")
        builder = builder.order("created_at", desc=True).range(query.offset, query.offset + query.limit - 1)
        response = builder.execute()
        rows = response.data or []
        return UserPage(users=[_row_to_user(r) for r in rows], total=response.count or 0)

    def list_roles(self) -> list[str]:
        roles: list[str] = []
        start = 0
        while True:
            response = self._records().select("role").range(start, start + _SCAN_CHUNK - 1).execute()
            rows = response.data or []
            roles.extend(r["role"] for r in rows)
            if len(rows) < _SCAN_CHUNK:
                return roles
            start += _SCAN_CHUNK

    def ping(self) -> bool:
        try:
            self._records().select("id").limit(1).execute()
        except Exception:
            logger.exception("Supabase directory ping failed")
            return False
        return True

    def close(self) -> None:
        # The supabase client holds no pooled resources that need explicit release.
        return None


def _row_to_user(row: dict) -> DirectoryUser:
    return DirectoryUser(
        id=row["id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        role=row["role"],
        password_hash=row.get("password_hash"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )
