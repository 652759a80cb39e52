"""
api/routes/auth.py -- Registration, login and session introspection endpoints.

Routes:
  POST /auth/register  -- create account + directory record; 201 with token
  POST /auth/login     -- provider-verified login; 200 with token
  GET  /auth/profile   -- the session principal (requires bearer token)
  GET  /auth/verify    -- {valid: true, user} (requires bearer token)

Security:
  Login failures return one generic 401 ("bad_credentials") whether the email
  is unknown or the password is wrong.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    AuthResponse,
    LoginRequest,
    PrincipalResponse,
    PublicUser,
    RegisterRequest,
    VerifyResponse,
)
from auth.dependencies import get_current_principal
from auth.models import AuthResult, Principal
from auth.service import AuthService

# Auth policy:
# - POST /auth/register: public
# - POST /auth/login:    public
# - GET  /auth/profile:  requires auth (get_current_principal)
# - GET  /auth/verify:   requires auth (get_current_principal)
router = APIRouter()


def _token_response(result: AuthResult, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(
            access_token=result.access_token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=result.expires_in,
            user=PublicUser.from_user(result.user),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Register a new account and return a session token.

    409 when the email is already registered.
    """
    auth_service: AuthService = request.app.state.auth_service
    result = auth_service.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role.value if body.role else None,
    )
    return _token_response(result, 201)


@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a session token."""
    auth_service: AuthService = request.app.state.auth_service
    result = auth_service.login(body.email, body.password)
    return _token_response(result, 200)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/profile", response_model=PrincipalResponse)
def profile(principal: Principal = Depends(get_current_principal)) -> PrincipalResponse:
    """Return the identity carried by the caller's token."""
    return PrincipalResponse.from_principal(principal)


@router.get("/auth/verify", response_model=VerifyResponse)
def verify(principal: Principal = Depends(get_current_principal)) -> VerifyResponse:
    """Confirm the bearer token is valid and still maps to a user."""
    return VerifyResponse(valid=True, user=PrincipalResponse.from_principal(principal))
