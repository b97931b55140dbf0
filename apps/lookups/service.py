from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.category import Category
from models.priority import Priority
from models.status import Status


class LookupService:
    """
    Read-only access to the reference tables.
    """

    @staticmethod
    async def list_categories(db: AsyncSession) -> List[Category]:
        res = await db.execute(select(Category).order_by(Category.name))
        return list(res.scalars().all())

    @staticmethod
    async def list_statuses(db: AsyncSession) -> List[Status]:
        res = await db.execute(select(Status).order_by(Status.id))
        return list(res.scalars().all())

    @staticmethod
    async def list_priorities(db: AsyncSession) -> List[Priority]:
        # Most urgent first
        res = await db.execute(select(Priority).order_by(Priority.sort_order.desc(), Priority.id))
        return list(res.scalars().all())
