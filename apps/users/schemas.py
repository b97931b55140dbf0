from typing import Optional

from pydantic import BaseModel, Field


class UserRegister(BaseModel):
    """
    Payload for citizen self-registration.
    """
    fullName: str = Field(..., min_length=3, max_length=200)
    userName: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6, max_length=100)


class UserLogin(BaseModel):
    """
    Payload for user login.
    """
    userName: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=100)


class UserOut(BaseModel):
    """
    Public user model returned to clients (no sensitive fields).
    """
    id: int
    fullName: str
    userName: str
    roles: list[str] = []
    createdAt: Optional[str] = None


class TokenResponse(BaseModel):
    """
    Response model for token pair and user data.
    """
    accessToken: str
    refreshToken: str
    user: UserOut


class RefreshRequest(BaseModel):
    """
    Payload for refreshing access tokens via refresh token.
    """
    refreshToken: str


class TokenPair(BaseModel):
    """
    Response model for just access and refresh tokens.
    Used by /api/auth/refresh endpoint.
    """
    accessToken: str
    refreshToken: str
