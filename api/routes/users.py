"""
api/routes/users.py -- User directory REST endpoints.

Routes (in registration order to avoid FastAPI path capture conflicts):
  POST   /users                 -- create user (admin)
  GET    /users                 -- paginated list (?page, limit, role, search)
  GET    /users/stats           -- counts by role (admin)
  GET    /users/{user_id}       -- fetch one
  PUT    /users/{user_id}       -- update profile / role
  PUT    /users/{user_id}/password  -- change own password; 204
  DELETE /users/{user_id}       -- delete (admin, not self); 204

user_id is typed uuid.UUID, so a malformed id fails request validation (400)
before the handler runs.

Role and ownership rules live in UserDirectoryService, not here. The admin
dependency on POST/DELETE/stats is an early gate; the service re-checks.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from api.models import (
    PasswordUpdate,
    RoleEnum,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserStatsResponse,
    UserUpdate,
)
from auth.dependencies import get_current_principal, require_admin
from auth.models import Principal
from auth.store import UserQuery
from directory.service import UserDirectoryService

# All user routes require authentication.
# Router-level dependency applies to every route registered on this router,
# so individual handlers don't each need to repeat it.
router = APIRouter(dependencies=[Depends(get_current_principal)])


def _service(request: Request) -> UserDirectoryService:
    return request.app.state.directory_service


# ---------------------------------------------------------------------------
# POST /users -- create (admin)
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    principal: Principal = Depends(require_admin),
) -> UserResponse:
    """Create a directory user with a provider account. 409 on duplicate email."""
    user = _service(request).create_user(
        principal,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role.value if body.role else None,
    )
    return UserResponse.from_user(user)


# ---------------------------------------------------------------------------
# GET /users -- paginated list
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    role: Optional[RoleEnum] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    principal: Principal = Depends(get_current_principal),
) -> UserListResponse:
    """List users newest first.

    role filters by exact match. search is a case-insensitive substring
    matched against first name, last name or email (any of the three).
    """
    query = UserQuery(
        page=page,
        limit=limit,
        role=role.value if role else None,
        search=search.strip() if search and search.strip() else None,
    )
    result = _service(request).list_users(principal, query)
    return UserListResponse(
        users=[UserResponse.from_user(u) for u in result.users],
        total=result.total,
        page=page,
        limit=limit,
    )


# ---------------------------------------------------------------------------
# GET /users/stats -- must be registered before /users/{user_id}
# ---------------------------------------------------------------------------


@router.get("/users/stats", response_model=UserStatsResponse)
def user_stats(request: Request, principal: Principal = Depends(require_admin)) -> UserStatsResponse:
    """Return total, photographer and admin counts."""
    stats = _service(request).get_stats(principal)
    return UserStatsResponse(total=stats.total, photographers=stats.photographers, admins=stats.admins)


# ---------------------------------------------------------------------------
# Single-user routes
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    request: Request,
    user_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
) -> UserResponse:
    return UserResponse.from_user(_service(request).get_user(principal, str(user_id)))


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: uuid.UUID,
    body: UserUpdate,
    principal: Principal = Depends(get_current_principal),
) -> UserResponse:
    """Update a profile. Self may change names; only admins may change roles."""
    user = _service(request).update_user(
        principal,
        str(user_id),
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role.value if body.role else None,
    )
    return UserResponse.from_user(user)


@router.put("/users/{user_id}/password", status_code=204)
def update_password(
    request: Request,
    user_id: uuid.UUID,
    body: PasswordUpdate,
    principal: Principal = Depends(get_current_principal),
) -> Response:
    """Change the caller's own password. 400 if current_password is wrong."""
    _service(request).update_password(principal, str(user_id), body.current_password, body.new_password)
    return Response(status_code=204)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(
    request: Request,
    user_id: uuid.UUID,
    principal: Principal = Depends(require_admin),
) -> Response:
    """Delete a user. Admins cannot delete themselves."""
    _service(request).delete_user(principal, str(user_id))
    return Response(status_code=204)
