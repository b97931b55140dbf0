import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.hashing import hash_password
from constants.categories import DEFAULT_CATEGORIES
from constants.priorities import PRIORITY_RANKS
from constants.roles import ALL_ROLES, ADMIN
from constants.statuses import ISSUE_STATUSES
from models.category import Category
from models.priority import Priority
from models.status import Status
from models.user import User, Role
from settings.config import get_settings

logger = logging.getLogger(__name__)


async def _ensure_named(db: AsyncSession, model, names) -> dict:
    res = await db.execute(select(model).where(model.name.in_(list(names))))
    existing = {row.name: row for row in res.scalars().all()}
    for name in names:
        if name not in existing:
            existing[name] = model(name=name)
            db.add(existing[name])
    return existing


async def seed_reference_data(db: AsyncSession) -> None:
    """
    Idempotently seed roles, statuses, priorities and categories.
    """
    await _ensure_named(db, Role, ALL_ROLES)
    await _ensure_named(db, Status, ISSUE_STATUSES)
    await _ensure_named(db, Category, DEFAULT_CATEGORIES)

    priorities = await _ensure_named(db, Priority, PRIORITY_RANKS.keys())
    for name, rank in PRIORITY_RANKS.items():
        priorities[name].sort_order = rank

    await db.commit()


async def seed_admin_user(db: AsyncSession) -> None:
    """
    Create the bootstrap admin account if it does not exist yet.
    """
    settings = get_settings()
    user_res = await db.execute(select(User).where(User.user_name == settings.ADMIN_USERNAME))
    if user_res.scalar_one_or_none():
        return

    role_res = await db.execute(select(Role).where(Role.name == ADMIN))
    admin_role = role_res.scalar_one()
    admin_user = User(
        full_name=settings.ADMIN_FULL_NAME,
        user_name=settings.ADMIN_USERNAME,
        password_hash=hash_password(settings.ADMIN_PASSWORD),
    )
    admin_user.roles = [admin_role]
    db.add(admin_user)
    await db.commit()
    logger.info("Bootstrap admin '%s' created", settings.ADMIN_USERNAME)
