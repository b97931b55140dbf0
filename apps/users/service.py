from typing import List, Optional, Tuple

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from apps.users.schemas import UserRegister, UserLogin
from apps.users.utils import sanitize_user
from common.exceptions import BadRequestError, http_unauthorized
from common.hashing import hash_password, verify_password
from common.jwt import create_access_refresh_tokens, verify_token
from constants.roles import CITIZEN
from models.user import User, Role


def _issue_tokens(user: User) -> dict:
    roles = sorted(user.role_names)
    return create_access_refresh_tokens(str(user.id), roles, extra_claims={"userName": user.user_name})


async def register_user(db: AsyncSession, payload: UserRegister) -> Tuple[dict, dict]:
    """
    Register a new citizen account and sign it in.
    """
    existing_res = await db.execute(select(User).where(User.user_name == payload.userName))
    if existing_res.scalar_one_or_none():
        raise BadRequestError("Username is already taken!")

    role_res = await db.execute(select(Role).where(Role.name == CITIZEN))
    citizen_role = role_res.scalar_one_or_none()
    if not citizen_role:
        raise BadRequestError(f"Role '{CITIZEN}' is not configured in the database.")

    user = User(
        full_name=payload.fullName,
        user_name=payload.userName,
        password_hash=hash_password(payload.password),
    )
    user.roles = [citizen_role]
    db.add(user)
    await db.commit()
    return _issue_tokens(user), sanitize_user(user)


async def authenticate_user(db: AsyncSession, payload: UserLogin) -> Tuple[dict, dict]:
    """
    Authenticate a user by userName/password and return a token pair and user dict.
    """
    user = await get_user_by_username(db, payload.userName)
    if not user or not verify_password(payload.password, user.password_hash):
        raise http_unauthorized("Incorrect username or password")
    return _issue_tokens(user), sanitize_user(user)


async def get_user_by_username(db: AsyncSession, user_name: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.user_name == user_name))
    return res.scalar_one_or_none()


async def refresh_tokens(db: AsyncSession, refresh_token: str) -> dict:
    """
    Issue a new access/refresh token pair from a valid refresh token.
    Roles are re-read from the database, not copied from the old token.
    """
    try:
        claims = verify_token(refresh_token, expected_token_type="refresh")
        user_id = int(claims.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise http_unauthorized("Invalid or expired refresh token.")

    user = await db.get(User, user_id)
    if not user:
        raise http_unauthorized("Invalid or expired refresh token.")
    return _issue_tokens(user)


async def list_users(db: AsyncSession, role: Optional[str] = None) -> List[dict]:
    """
    All users, optionally only those holding `role` (case-insensitive, e.g. STAFF).
    """
    stmt = select(User).order_by(User.id)
    if role and role.strip():
        stmt = stmt.join(User.roles).where(Role.name == role.strip().upper())
    res = await db.execute(stmt)
    return [sanitize_user(u) for u in res.scalars().unique().all()]
