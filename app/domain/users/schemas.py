"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import User, UserRole


class UserCreate(BaseModel):
    """Schema for creating a user directly (admin only)"""

    lineId: Optional[str] = None
    name: Optional[str] = None
    pictureUrl: Optional[str] = None
    phone: Optional[str] = None
    license: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER


class UserUpdate(BaseModel):
    """Schema for updating a user; role is honoured for admins only"""

    lineId: Optional[str] = None
    name: Optional[str] = None
    pictureUrl: Optional[str] = None
    phone: Optional[str] = None
    license: Optional[str] = None
    role: Optional[UserRole] = None


class UserResponse(BaseModel):
    id: int
    lineId: str
    name: Optional[str] = None
    pictureUrl: Optional[str] = None
    phone: str
    license: Optional[str] = None
    role: UserRole
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            lineId=user.line_id,
            name=user.name,
            pictureUrl=user.picture_url,
            phone=user.phone,
            license=user.license,
            role=UserRole(user.role),
            createdAt=user.created_at,
            updatedAt=user.updated_at,
        )


class LoginRequest(BaseModel):
    """First login sends phone (and optionally a plate); returning users send nothing"""

    phone: Optional[str] = None
    license: Optional[str] = None


class LoginResponse(BaseModel):
    message: str
    user: UserResponse
