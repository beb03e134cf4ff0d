"""User service - Business logic for the user directory and LINE login"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import User, UserRole
from ...services.line_identity import LineIdentity
from ...shared.errors import (
    AuthorizationError,
    NewUserError,
    NotFoundError,
    ValidationError,
)
from ...shared.validators import is_valid_phone, validate_license
from .repository import UserRepository
from .schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

PHONE_MESSAGE = "Invalid phone number, expected 10 digits starting with 09"


def _checked_phone(phone: Optional[str]) -> str:
    if not is_valid_phone(phone):
        raise ValidationError(PHONE_MESSAGE)
    return phone


def _checked_license(license: Optional[str]) -> str:
    try:
        return validate_license(license)
    except ValueError as e:
        raise ValidationError(str(e)) from e


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def get_user_by_line_id(self, line_id: str) -> User:
        if not line_id or not line_id.strip():
            raise ValidationError("Line ID must not be empty")
        user = self.repo.get_user_by_line_id(self.db, line_id)
        if not user:
            raise NotFoundError(f"No user with Line ID {line_id}")
        return user

    def get_user(self, user_id: int) -> User:
        if user_id <= 0:
            raise ValidationError("User ID must be a positive integer")
        user = self.repo.get_user_by_id(self.db, user_id)
        if not user:
            raise NotFoundError(f"No user with ID {user_id}")
        return user

    def get_user_for(self, user_id: int, acting_user: User) -> User:
        """Read a user record; customers may only read their own"""
        if acting_user.role != UserRole.ADMIN.value and acting_user.id != user_id:
            raise AuthorizationError("You can only view your own profile")
        return self.get_user(user_id)

    def create_user(self, data: UserCreate) -> User:
        """Create a user with validation"""
        if not data.lineId or not data.lineId.strip():
            raise ValidationError("Line ID is required")
        if not data.name or not data.name.strip():
            raise ValidationError("Name is required")
        if not data.phone or not data.phone.strip():
            raise ValidationError("Phone number is required")
        phone = _checked_phone(data.phone)
        license = _checked_license(data.license) if data.license else None

        if self.repo.get_user_by_line_id(self.db, data.lineId):
            raise ValidationError(f"Line ID {data.lineId} is already in use")

        try:
            user = self.repo.create_user(
                self.db,
                line_id=data.lineId,
                name=data.name,
                picture_url=data.pictureUrl,
                phone=phone,
                license=license,
                role=data.role.value,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError(f"Line ID {data.lineId} is already in use") from e

        logger.info(f"User {user.id} created (role={user.role})")
        return user

    def update_user(self, user_id: int, data: UserUpdate, acting_user: User) -> User:
        """Update a user; customers may only update themselves and never their role"""
        if user_id <= 0:
            raise ValidationError("User ID must be a positive integer")

        is_admin = acting_user.role == UserRole.ADMIN.value
        if not is_admin and acting_user.id != user_id:
            raise AuthorizationError("You can only update your own profile")

        user = self.get_user(user_id)

        supplied = data.model_dump(exclude_unset=True)
        if not supplied:
            raise ValidationError("Update data must not be empty")

        updates = {}
        if "role" in supplied and data.role is not None:
            if not is_admin:
                raise AuthorizationError("Only administrators can change roles")
            updates["role"] = data.role.value
        if "phone" in supplied:
            updates["phone"] = _checked_phone(data.phone)
        if "license" in supplied:
            updates["license"] = _checked_license(data.license) if data.license else None
        if "name" in supplied:
            updates["name"] = data.name
        if "pictureUrl" in supplied:
            updates["picture_url"] = data.pictureUrl
        if "lineId" in supplied and data.lineId and data.lineId != user.line_id:
            if self.repo.get_user_by_line_id(self.db, data.lineId):
                raise ValidationError(f"Line ID {data.lineId} is already in use")
            updates["line_id"] = data.lineId

        try:
            user = self.repo.update_user(self.db, user, **updates)
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError(f"Line ID {data.lineId} is already in use") from e

        logger.info(f"User {user.id} updated by {acting_user.id}: {sorted(updates)}")
        return user

    def delete_user(self, user_id: int) -> dict:
        user = self.get_user(user_id)
        self.repo.delete_user(self.db, user)
        logger.info(f"User {user_id} deleted")
        return {"message": "User deleted successfully"}

    def login_or_register(
        self, identity: LineIdentity, phone: Optional[str] = None, license: Optional[str] = None
    ) -> User:
        """
        Return the user behind a verified LINE identity, creating it on first login.

        Without a phone number an unknown identity raises NewUserError so the
        client can collect one and retry. Two first logins racing on the same
        LINE account resolve to the row whichever insert won.
        """
        user = self.repo.get_user_by_line_id(self.db, identity.subject_id)
        if user:
            return user

        if not phone or not phone.strip():
            raise NewUserError(identity.subject_id, identity.display_name, identity.picture_url)

        phone = _checked_phone(phone)
        normalized_license = _checked_license(license) if license and license.strip() else None

        logger.info("Registering new LINE user")
        try:
            user = self.repo.create_user(
                self.db,
                line_id=identity.subject_id,
                name=identity.display_name,
                picture_url=identity.picture_url or "",
                phone=phone,
                license=normalized_license,
                role=UserRole.CUSTOMER.value,
            )
        except IntegrityError:
            self.db.rollback()
            user = self.repo.get_user_by_line_id(self.db, identity.subject_id)
            if not user:
                raise
            logger.info(f"Concurrent first login resolved to existing user {user.id}")
            return user

        logger.info(f"New user {user.id} registered")
        return user
