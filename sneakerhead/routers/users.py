# sneakerhead/routers/users.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from sneakerhead.core.auth import require_auth, require_admin
from sneakerhead.database import get_session
from sneakerhead.models.user import User
from sneakerhead.repositories.user_repo import UserRepository
from sneakerhead.schemas.user import (
    AuthResponse,
    UserLogin,
    UserRead,
    UserRegister,
    UserRoleUpdate,
    UserUpdate,
)
from sneakerhead.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo)


# -------- Authentication --------


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: UserRegister,
    session: Session = Depends(get_session),
):
    """
    Create a customer account and return it with an access token.
    """
    return service.register(session, payload)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: UserLogin,
    session: Session = Depends(get_session),
):
    """
    Exchange email + password for an access token.
    """
    return service.login(session, payload)


# -------- Self profile --------


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.
    """
    return current_user


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update the authenticated user's profile (partial update).
    """
    return service.update_me(session, current_user, payload)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[UserRead],
    dependencies=[Depends(require_admin)],
)
def list_users(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all users (admin only).

    Pagination via skip/limit.
    """
    return service.list_users(session, skip, limit)


@router.get(
    "/{user_id}",
    response_model=UserRead,
    dependencies=[Depends(require_admin)],
)
def get_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a specific user by id (admin only).
    """
    return service.get_user(session, user_id)


@router.patch(
    "/{user_id}/role",
    response_model=UserRead,
    dependencies=[Depends(require_admin)],
)
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
):
    """
    Update a user's role (admin only).

    Allowed roles: user, admin.
    """
    return service.update_role(session, user_id, payload)
