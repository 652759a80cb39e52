"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Only one auth method exists: an Authorization: Bearer <token> header carrying
a JWT minted by auth.tokens.create_access_token().

try_get_current_principal() is the soft variant (returns None on failure).
get_current_principal() wraps it and raises 401 if unauthenticated.
require_admin() wraps get_current_principal() and raises 403 if not admin.

The 401/403 here are raised as core.errors kinds, so they reach the client in
the same envelope as service-layer failures.

Layer rule: no imports from directory/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import Principal
from auth.service import AuthService
from auth.tokens import decode_access_token
from core.errors import Forbidden, Unauthorized


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def try_get_current_principal(request: Request) -> Principal | None:
    """Authenticate the request from its bearer token.

    Signature and expiry are checked first; only a verified token reaches
    AuthService.validate_user(), which confirms the subject still exists.
    Never raises -- callers that need a hard 401 use get_current_principal().
    """
    token = _bearer_token(request)
    if token is None:
        return None
    claims = decode_access_token(token)
    if claims is None:
        return None
    auth_service: AuthService = request.app.state.auth_service
    return auth_service.validate_user(claims)


def get_current_principal(request: Request) -> Principal:
    """Require authentication. Raises Unauthorized (401) if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    principal = try_get_current_principal(request)
    if principal is None:
        raise Unauthorized("Authentication required.")
    return principal


def require_admin(request: Request) -> Principal:
    """Require the admin role. 401 if unauthenticated, 403 if not admin."""
    principal = get_current_principal(request)
    if not principal.is_admin:
        raise Forbidden("Admin access required.")
    return principal
