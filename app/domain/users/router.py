"""User router - FastAPI endpoints for the user directory"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from .schemas import UserCreate, UserResponse, UserUpdate
from .service import UserService

router = APIRouter(prefix="/user", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


@router.get("/line/{line_id}", response_model=UserResponse)
async def get_user_by_line_id(
    line_id: str,
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.get_user_by_line_id(line_id))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.get_user_for(user_id, current_user))


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.create_user(data))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Update a profile (self, or anyone for admins)"""
    return UserResponse.from_model(service.update_user(user_id, data, current_user))


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    _admin: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return service.delete_user(user_id)
