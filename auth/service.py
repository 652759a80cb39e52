"""
auth/service.py -- Registration, login and token-claim validation.

The provider verifies passwords; this service only mirrors identities into the
directory and mints the session token. Both register() and login() return the
same AuthResult shape so the route layer serializes them identically.

Failure policy:
  register -- duplicate email is a Conflict. Anything else from the store
              propagates unchanged.
  login    -- every failure (bad password, unknown email, provider error,
              missing mirror record) collapses to one Unauthorized. Callers
              must not be able to tell an unknown email from a wrong password.
  validate_user -- never raises; None means "treat as unauthenticated".

Layer rule: no imports from api/ or directory/.
"""

from __future__ import annotations

import logging

from auth.models import ROLE_PHOTOGRAPHER, ROLES, AuthResult, DirectoryUser, Principal
from auth.store import DirectoryStore, DuplicateEmailError
from auth.tokens import create_access_token, hash_password, verify_password
from core.config import get_settings
from core.errors import Conflict, Unauthorized, ValidationFailed

logger = logging.getLogger("portfolio.auth")


def provision_user(
    store: DirectoryStore,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str | None,
) -> DirectoryUser:
    """Create the provider account, then the mirrored directory record.

    Shared by self-registration and admin-initiated creation. Raises Conflict
    when either side reports the email as taken, ValidationFailed for an
    unknown role. If the record cannot be written, the new provider account
    is deleted again so the email stays available.
    """
    email = email.strip().lower()
    role = role or ROLE_PHOTOGRAPHER
    if role not in ROLES:
        raise ValidationFailed(f"Unknown role: {role}")
    try:
        account_id = store.create_account(
            email,
            password,
            {"first_name": first_name, "last_name": last_name, "role": role},
        )
    except DuplicateEmailError as exc:
        raise Conflict("Email already exists") from exc

    try:
        return store.create_record(
            DirectoryUser(
                id=account_id,
                email=email,
                first_name=first_name,
                last_name=last_name,
                role=role,
                password_hash=hash_password(password),
            )
        )
    except Exception as exc:
        _discard_account(store, account_id)
        if isinstance(exc, DuplicateEmailError):
            raise Conflict("Email already exists") from exc
        raise


def _discard_account(store: DirectoryStore, account_id: str) -> None:
    """Best-effort removal of a provider account whose record was never written."""
    try:
        store.delete_account(account_id)
    except Exception:
        logger.warning("Could not remove orphaned provider account %s", account_id, exc_info=True)


class AuthService:
    """Issues session tokens for registered and authenticated users."""

    def __init__(self, store: DirectoryStore) -> None:
        self._store = store

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: str | None = None,
    ) -> AuthResult:
        user = provision_user(self._store, email, password, first_name, last_name, role)
        logger.info("Registered user %s (role=%s)", user.id, user.role)
        return self._issue(user)

    def login(self, email: str, password: str) -> AuthResult:
        email = email.strip().lower()
        try:
            account_id = self._store.authenticate(email, password)
            user = self._store.get_record(account_id)
        except Exception as exc:
            # One answer for every failure so the response reveals nothing
            # about whether the email exists.
            logger.info("Login failed: %s", type(exc).__name__)
            raise Unauthorized("Invalid credentials", code="bad_credentials") from exc

        if get_settings().reconcile_password_on_login:
            self._reconcile_local_hash(user, password)
        return self._issue(user)

    def validate_user(self, claims: dict) -> Principal | None:
        """Resolve verified token claims to the caller, or None.

        The claims have already passed signature and expiry checks. The
        directory lookup only confirms the subject still exists; email and
        role come from the claims, so they are as fresh as the token. A
        deleted record or a store failure both yield None.
        """
        user_id, email, role = claims.get("sub"), claims.get("email"), claims.get("role")
        if not (user_id and email and role):
            return None
        try:
            self._store.get_record(user_id)
        except Exception as exc:
            logger.debug("Token subject %s did not resolve: %s", user_id, exc)
            return None
        return Principal(id=user_id, email=email, role=role)

    def _issue(self, user: DirectoryUser) -> AuthResult:
        expires_in = get_settings().token_expire_seconds
        token = create_access_token(user.id, user.email, user.role, expire_seconds=expires_in)
        return AuthResult(access_token=token, expires_in=expires_in, user=user)

    def _reconcile_local_hash(self, user: DirectoryUser, password: str) -> None:
        """Re-sync the local hash with a password the provider just accepted.

        The provider is the source of truth for credentials. If an earlier
        best-effort mirror failed, the two stores disagree until this runs.
        """
        if verify_password(password, user.password_hash):
            return
        try:
            self._store.update_record(user.id, password_hash=hash_password(password))
            logger.warning("Local password hash for %s was out of sync with the provider; re-synced", user.id)
        except Exception:
            logger.warning("Could not re-sync local password hash for %s", user.id, exc_info=True)
