import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user, get_verified_identity
from ..database import get_db
from ..domain.users.schemas import LoginRequest, LoginResponse, UserResponse
from ..domain.users.service import UserService
from ..models import User
from ..services.line_identity import LineIdentity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse)
async def login(
    data: Optional[LoginRequest] = None,
    identity: LineIdentity = Depends(get_verified_identity),
    db: Session = Depends(get_db),
):
    """
    Log in with a LINE ID token, registering the account on first use.

    Unknown accounts without a phone number get a 400 with isNewUser=true
    and the LINE profile so the client can finish registration.
    """
    data = data or LoginRequest()
    user = UserService(db).login_or_register(identity, data.phone, data.license)
    logger.info(f"User {user.id} logged in")
    return LoginResponse(message="Login successful", user=UserResponse.from_model(user))


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """Echo the authenticated user"""
    return {"user": UserResponse.from_model(current_user)}
