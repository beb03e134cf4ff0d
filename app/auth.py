import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .domain.users.repository import UserRepository
from .models import User, UserRole
from .services.line_identity import LineIdentity, LineIdentityResolver, get_identity_resolver
from .shared.errors import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_verified_identity(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    resolver: LineIdentityResolver = Depends(get_identity_resolver),
) -> LineIdentity:
    """Verify the bearer LINE ID token without requiring a registered user"""
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Authentication token not provided")
    return await resolver.verify(credentials.credentials)


async def get_current_user(
    identity: LineIdentity = Depends(get_verified_identity),
    db: Session = Depends(get_db),
) -> User:
    """Get the registered user behind the bearer token"""
    user = UserRepository.get_user_by_line_id(db, identity.subject_id)
    if not user:
        logger.info("Authenticated LINE account has no user record yet")
        raise AuthenticationError("User not registered, please log in first")

    logger.debug(f"User authenticated: {user.id}")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only ADMIN users through"""
    if user.role != UserRole.ADMIN.value:
        logger.warning(f"User {user.id} attempted an admin-only route")
        raise AuthorizationError("Insufficient permissions")
    return user
