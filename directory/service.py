"""
directory/service.py -- Role- and ownership-gated operations on the user directory.

Every public method takes the caller as an explicit Principal and runs its
authorization check before touching the store, so a rejected call never reads
or writes anything.

Guardrails kept exactly:
  - a non-admin may never change a role, not even on their own record.
  - an admin may not delete their own account (no self-lockout).
  - passwords are changed by their owner only; admins cannot set them here.

Best-effort provider calls (password mirror, account delete) run through
_best_effort(): failure is logged at WARNING and the primary operation still
succeeds.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from auth.models import ROLE_ADMIN, ROLE_PHOTOGRAPHER, ROLES, DirectoryUser, Principal
from auth.service import provision_user
from auth.store import DirectoryStore, RecordNotFoundError, UserPage, UserQuery
from auth.tokens import hash_password, verify_password
from core.errors import BadRequest, Forbidden, NotFound, ValidationFailed

logger = logging.getLogger("portfolio.directory")


@dataclass(frozen=True)
class UserStats:
    total: int
    photographers: int
    admins: int


def _best_effort(action: str, call: Callable[[], object]) -> None:
    """Run a secondary provider call; log and continue on any failure."""
    try:
        call()
    except Exception:
        logger.warning("Best-effort %s failed; continuing", action, exc_info=True)


class UserDirectoryService:
    """CRUD over directory records, one method per API operation."""

    def __init__(self, store: DirectoryStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_user(
        self,
        caller: Principal,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: str | None = None,
    ) -> DirectoryUser:
        if not caller.is_admin:
            raise Forbidden("Only admins can create users")
        user = provision_user(self._store, email, password, first_name, last_name, role)
        logger.info("Admin %s created user %s (role=%s)", caller.id, user.id, user.role)
        return user

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_users(self, caller: Principal, query: UserQuery) -> UserPage:
        """Paginated listing. Any authenticated caller may list."""
        return self._store.query_records(query)

    def get_user(self, caller: Principal, user_id: str) -> DirectoryUser:
        return self._get_or_404(user_id)

    def get_stats(self, caller: Principal) -> UserStats:
        """Count records by role. Scans every record; nothing is pre-aggregated."""
        if not caller.is_admin:
            raise Forbidden("Only admins can view user statistics")
        roles = self._store.list_roles()
        return UserStats(
            total=len(roles),
            photographers=sum(1 for r in roles if r == ROLE_PHOTOGRAPHER),
            admins=sum(1 for r in roles if r == ROLE_ADMIN),
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_user(
        self,
        caller: Principal,
        user_id: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | None = None,
    ) -> DirectoryUser:
        """Update profile fields, and the role when the caller is an admin.

        Both checks run before the target is fetched. A non-admin who sends a
        role is rejected even when updating their own record.
        """
        if not caller.is_admin and caller.id != user_id:
            raise Forbidden("You can only update your own profile or be an admin")
        if role is not None and not caller.is_admin:
            raise Forbidden("Only admins can change user roles")
        if role is not None and role not in ROLES:
            raise ValidationFailed(f"Unknown role: {role}")

        self._get_or_404(user_id)

        updates: dict = {}
        if first_name is not None:
            updates["first_name"] = first_name
        if last_name is not None:
            updates["last_name"] = last_name
        if role is not None:
            updates["role"] = role
        if not updates:
            raise BadRequest("No fields to update.", code="no_changes")

        try:
            updated = self._store.update_record(user_id, **updates)
        except RecordNotFoundError as exc:
            # Deleted between the existence check and the write.
            raise NotFound(f"User with ID {user_id} not found") from exc
        logger.info("User %s updated by %s (fields=%s)", user_id, caller.id, sorted(updates))
        return updated

    def update_password(self, caller: Principal, user_id: str, current_password: str, new_password: str) -> None:
        """Change the caller's own password.

        The current password is checked against the local hash. A mismatch
        raises before anything is written. The provider copy is updated on a
        best-effort basis; a drift left behind is repaired at the next login
        (see AuthService.login).
        """
        if caller.id != user_id:
            raise Forbidden("You can only change your own password")

        user = self._get_or_404(user_id)
        if not verify_password(current_password, user.password_hash):
            raise BadRequest("Current password is incorrect", code="wrong_password")

        self._store.update_record(user_id, password_hash=hash_password(new_password))
        _best_effort(
            f"provider password update for {user_id}",
            lambda: self._store.update_account_password(user_id, new_password),
        )
        logger.info("Password changed for user %s", user_id)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_user(self, caller: Principal, user_id: str) -> None:
        if not caller.is_admin:
            raise Forbidden("Only admins can delete users")
        if caller.id == user_id:
            raise BadRequest("You cannot delete your own account", code="self_delete")

        try:
            self._store.delete_record(user_id)
        except RecordNotFoundError as exc:
            raise NotFound(f"User with ID {user_id} not found") from exc
        _best_effort(
            f"provider account delete for {user_id}",
            lambda: self._store.delete_account(user_id),
        )
        logger.info("User %s deleted by %s", user_id, caller.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_or_404(self, user_id: str) -> DirectoryUser:
        try:
            return self._store.get_record(user_id)
        except RecordNotFoundError as exc:
            raise NotFound(f"User with ID {user_id} not found") from exc
