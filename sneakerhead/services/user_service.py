# sneakerhead/services/user_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from sneakerhead.core.auth import create_access_token, hash_password, verify_password
from sneakerhead.core.errors import NotFoundError, ValidationFailureError
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

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for accounts.

    Responsibilities:
      - registration with unique username/email
      - password login and token issuing
      - profile edits and admin role changes
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    @staticmethod
    def _auth_response(user: User) -> AuthResponse:
        return AuthResponse(
            **UserRead.model_validate(user, from_attributes=True).model_dump(),
            access_token=create_access_token(user),
        )

    def _ensure_unique(
        self,
        session: Session,
        username: str | None,
        email: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if username:
            other = self.repo.get_by_username(session, username)
            if other and other.id != exclude_id:
                raise ValidationFailureError("Username already taken")
        if email:
            other = self.repo.get_by_email(session, email)
            if other and other.id != exclude_id:
                raise ValidationFailureError("Email already registered")

    # ----- Authentication -----

    def register(self, session: Session, payload: UserRegister) -> AuthResponse:
        email = payload.email.lower()
        self._ensure_unique(session, payload.username, email)

        user = User(
            username=payload.username,
            email=email,
            password_hash=hash_password(payload.password),
            full_name=payload.full_name,
            address=payload.address,
            phone=payload.phone,
            role="user",
        )
        user = self.repo.create(session, user)
        logger.info("User %s registered", user.id)
        return self._auth_response(user)

    def login(self, session: Session, payload: UserLogin) -> AuthResponse:
        """
        Raises:
            NotFoundError: unknown email.
            HTTPException(401): wrong password.
        """
        user = self.repo.get_by_email(session, payload.email.lower())
        if not user:
            raise NotFoundError("User not found")
        if not verify_password(payload.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid password",
            )
        return self._auth_response(user)

    # ----- Self profile -----

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits.
        """
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            changes["email"] = changes["email"].lower()
        self._ensure_unique(
            session,
            changes.get("username"),
            changes.get("email"),
            exclude_id=current_user.id,
        )

        password = changes.pop("password", None)
        if password:
            current_user.password_hash = hash_password(password)
        for field, value in changes.items():
            setattr(current_user, field, value)

        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(self, session: Session, skip: int, limit: int) -> list[User]:
        """List users with pagination (admin only)."""
        return self.repo.list(session, skip=skip, limit=limit)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_role(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change user's role (admin only).

        Role validation is enforced by the schema (Literal).
        """
        user = self.get_user(session, user_id)
        user.role = payload.role
        return self.repo.update(session, user)
