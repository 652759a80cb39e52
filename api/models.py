"""
API request and response models for the portfolio auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

password_hash never appears on any response model: UserResponse is built
field by field from a DirectoryUser in UserResponse.from_user().

Passwords reach the services exactly as sent. Only name fields are stripped;
EmailStr normalizes email addresses itself.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

from auth.models import DirectoryUser, Principal

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# bcrypt's input limit is 72 bytes of the UTF-8 encoding, not 72 characters.
PASSWORD_MAX_BYTES = 72

_Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
_Password = Annotated[str, Field(min_length=6)]


def check_password_bytes(value: str) -> str:
    """Reject a password whose UTF-8 encoding is longer than bcrypt accepts."""
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded.")
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    photographer = "photographer"
    admin = "admin"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    email: EmailStr
    password: _Password

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return check_password_bytes(value)


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register and POST /users.

    role is optional; the service defaults it to photographer.
    """

    email: EmailStr
    password: _Password
    first_name: _Name
    last_name: _Name
    role: Optional[RoleEnum] = None

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return check_password_bytes(value)


class UserCreate(RegisterRequest):
    """Request body for POST /users (admin only). Same shape as registration."""


class UserUpdate(BaseModel):
    """Request body for PUT /users/{id}. Omitted fields are left unchanged."""

    first_name: Optional[_Name] = None
    last_name: Optional[_Name] = None
    role: Optional[RoleEnum] = None


class PasswordUpdate(BaseModel):
    """Request body for PUT /users/{id}/password."""

    current_password: _Password
    new_password: _Password

    @field_validator("current_password", "new_password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return check_password_bytes(value)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class PublicUser(BaseModel):
    """The user view embedded in register/login responses."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: str

    @classmethod
    def from_user(cls, user: DirectoryUser) -> "PublicUser":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
        )


class AuthResponse(BaseModel):
    """Response for POST /auth/register and POST /auth/login."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: PublicUser


class PrincipalResponse(BaseModel):
    """The authenticated caller as carried in the session token."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    role: str

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        return cls(id=principal.id, email=principal.email, role=principal.role)


class VerifyResponse(BaseModel):
    """Response for GET /auth/verify."""

    model_config = ConfigDict(frozen=True)

    valid: bool = True
    user: PrincipalResponse


class UserResponse(BaseModel):
    """A directory record as returned by the /users endpoints."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: DirectoryUser) -> "UserResponse":
        """Factory Method -- the only place a DirectoryUser becomes a response."""
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserListResponse(BaseModel):
    """Response for GET /users."""

    model_config = ConfigDict(frozen=True)

    users: list[UserResponse]
    total: int
    page: int
    limit: int


class UserStatsResponse(BaseModel):
    """Response for GET /users/stats."""

    model_config = ConfigDict(frozen=True)

    total: int
    photographers: int
    admins: int


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    timestamp: str
    components: dict[str, str]
