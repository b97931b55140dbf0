from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from apps.users.schemas import (
    UserRegister,
    UserLogin,
    TokenResponse,
    RefreshRequest,
    UserOut,
    TokenPair,
)
from apps.users.service import register_user, authenticate_user, refresh_tokens, list_users, get_user_by_username
from common.exceptions import http_unauthorized
from common.hashing import verify_password
from common.jwt import create_access_refresh_tokens
from models.base import get_db
from security.auth_backend import get_current_active_user

router = APIRouter(prefix="/api/auth", tags=["Auth"])
users_router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserRegister, db: AsyncSession = Depends(get_db)):
    """
    Register a new citizen.
    - Validates unique userName
    - Stores only hashed password
    """
    tokens, user_dict = await register_user(db, payload)
    return {"accessToken": tokens["accessToken"], "refreshToken": tokens["refreshToken"], "user": user_dict}


@router.post("/login", response_model=TokenResponse)
async def login(payload: UserLogin, db: AsyncSession = Depends(get_db)):
    """
    Login with userName and password to receive access + refresh tokens.
    """
    tokens, user_dict = await authenticate_user(db, payload)
    return {"accessToken": tokens["accessToken"], "refreshToken": tokens["refreshToken"], "user": user_dict}


@router.post("/refresh", response_model=TokenPair)
async def refresh(payload: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """
    Refresh tokens using a valid refresh token.
    """
    return await refresh_tokens(db, payload.refreshToken)


@router.post("/logout")
async def logout():
    """
    Logout endpoint - stateless JWT needs no server action.
    """
    return {"message": "Logged out successfully"}


# OAuth2 token endpoint for Swagger "Authorize" (password flow)
@router.post("/token")
async def issue_token(form_data: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    """
    OAuth2 password flow token endpoint used by the Swagger Authorize dialog.
    Accepts form data fields 'username' and 'password' and returns a bearer token.
    """
    user = await get_user_by_username(db, form_data.username)
    if not user or not verify_password(form_data.password, user.password_hash):
        raise http_unauthorized("Incorrect username or password")

    tokens = create_access_refresh_tokens(str(user.id), sorted(user.role_names))
    return {"access_token": tokens["accessToken"], "token_type": "bearer"}


@users_router.get("", response_model=List[UserOut], dependencies=[Depends(get_current_active_user)])
async def get_users(
    role: Optional[str] = Query(default=None, description="Only users holding this role, e.g. STAFF"),
    db: AsyncSession = Depends(get_db),
):
    return await list_users(db, role)
