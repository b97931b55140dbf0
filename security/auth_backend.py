from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from common.exceptions import http_unauthorized
from common.jwt import verify_token
from models.base import get_db
from models.user import User

# OAuth2PasswordBearer expects a tokenUrl for the interactive docs to work.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


async def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)) -> User:
    """
    Dependency to retrieve the current authenticated user from the JWT.
    Validates the access token and fetches the associated user (with roles) from DB.
    """
    credentials_exception = http_unauthorized("Could not validate credentials")
    if not token:
        raise credentials_exception
    try:
        payload = verify_token(token, expected_token_type="access")
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise credentials_exception

    user: Optional[User] = await db.get(User, user_id)
    if not user:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    The resolved actor. Routers pass it explicitly into every service call.
    """
    return current_user
