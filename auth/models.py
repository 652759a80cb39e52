"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, zero logic beyond projections).
Dataclasses own domain shape; stores and services do the work.

Layer rule: no imports from api/ or directory/.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ROLE_PHOTOGRAPHER = "photographer"
ROLE_ADMIN = "admin"
ROLES = (ROLE_PHOTOGRAPHER, ROLE_ADMIN)


@dataclass
class DirectoryUser:
    """The locally mirrored record for a provider identity.

    id is issued by the provider when the account is created and is reused
    verbatim as the directory primary key, so the two sides can always be
    joined without a lookup table.

    password_hash is the local bcrypt hash used by the change-password flow.
    It must never leave the service layer -- response models are built field
    by field and do not include it.
    """

    id: str
    email: str
    first_name: str
    last_name: str
    role: str = ROLE_PHOTOGRAPHER
    password_hash: str | None = field(default=None, repr=False)
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, rebuilt from token claims on every request.

    Only id, email and role travel in the token. The role is as fresh as the
    token's issuance time; changing a user's role does not revoke tokens
    already handed out.
    """

    id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass
class AuthResult:
    """Outcome of a successful register or login."""

    access_token: str
    expires_in: int
    user: DirectoryUser
