"""
api/routes/v1/users.py -- Account administration (admin only).

Routes:
  GET    /api/v1/users              -- list accounts, newest first
  PUT    /api/v1/users/{id}/role    -- change an account's role
  DELETE /api/v1/users/{id}         -- delete an account

The last-admin rule lives in UserStore: demoting or deleting the only admin
raises LastAdminError inside the same transaction that would have made the
change. A role change reaches the affected user's tokens only at their next
login -- issued tokens keep the role they were signed with.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import MessageResponse, RoleUpdate, UserListResponse, UserResponse
from auth.dependencies import require_roles
from auth.models import WRITE_ROLES
from auth.store import UserStore

router = APIRouter(dependencies=[Depends(require_roles(*WRITE_ROLES))])


@router.get("/users", response_model=UserListResponse)
def list_users(request: Request) -> UserListResponse:
    user_store: UserStore = request.app.state.user_store
    return UserListResponse(
        users=[
            UserResponse(user_id=u.id, username=u.username, role=u.role, created_at=u.created_at or "")
            for u in user_store.list_users()
        ]
    )


@router.put("/users/{user_id}/role", response_model=MessageResponse)
def update_role(request: Request, user_id: int, body: RoleUpdate) -> MessageResponse:
    """Set a user's role. An admin may demote themselves while another admin remains."""
    user_store: UserStore = request.app.state.user_store
    user_store.update_role(user_id, body.role.value)
    return MessageResponse(message=f"User role updated to {body.role.value}")


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(request: Request, user_id: int) -> MessageResponse:
    user_store: UserStore = request.app.state.user_store
    user_store.delete_user(user_id)
    return MessageResponse(message="User deleted successfully")
