"""Service catalog schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Service


class ServiceCreate(BaseModel):
    """Schema for creating a catalog entry"""

    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = None
    duration: Optional[int] = None
    isActive: Optional[bool] = None


class ServiceUpdate(BaseModel):
    """Schema for updating a catalog entry"""

    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = None
    duration: Optional[int] = None
    isActive: Optional[bool] = None


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Optional[int] = None
    duration: Optional[int] = None
    isActive: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, service: Service) -> "ServiceResponse":
        return cls(
            id=service.id,
            name=service.name,
            description=service.description,
            price=service.price,
            duration=service.duration,
            isActive=service.is_active,
            createdAt=service.created_at,
            updatedAt=service.updated_at,
        )
