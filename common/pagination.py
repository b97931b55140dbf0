from dataclasses import dataclass
from math import ceil
from typing import Any, Dict, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

MAX_PAGE_SIZE = 100


@dataclass
class PaginationParams:
    """
    Reusable pagination parameters. Pages are 1-based.
    """
    page: int = 1
    size: int = 10

    def normalized(self) -> "PaginationParams":
        return PaginationParams(page=max(1, self.page or 1), size=max(1, min(self.size or 10, MAX_PAGE_SIZE)))


async def paginate_select(
    db: AsyncSession,
    base_stmt,
    count_stmt,
    params: PaginationParams,
) -> Tuple[List[Any], Dict[str, int]]:
    """
    Async pagination helper for SQLAlchemy 2.0 style select statements.
    The base statement must already carry its ORDER BY so pages are stable.
    Returns (items, pagination_dict)
    """
    params = params.normalized()
    total_res = await db.execute(count_stmt)
    total = int(total_res.scalar_one() or 0)
    items_res = await db.execute(base_stmt.limit(params.size).offset((params.page - 1) * params.size))
    items = list(items_res.scalars().all())
    total_pages = ceil(total / params.size) if total else 0
    return items, {"page": params.page, "size": params.size, "total": total, "total_pages": total_pages}
