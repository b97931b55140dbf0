from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from apps.lookups.schemas import LookupOut, PriorityOut
from apps.lookups.service import LookupService
from models.base import get_db

router = APIRouter(prefix="/api", tags=["Lookups"])


@router.get("/categories", response_model=List[LookupOut])
async def list_categories(db: AsyncSession = Depends(get_db)):
    categories = await LookupService.list_categories(db)
    return [LookupOut(id=c.id, name=c.name) for c in categories]


@router.get("/statuses", response_model=List[LookupOut])
async def list_statuses(db: AsyncSession = Depends(get_db)):
    statuses = await LookupService.list_statuses(db)
    return [LookupOut(id=s.id, name=s.name) for s in statuses]


@router.get("/priorities", response_model=List[PriorityOut])
async def list_priorities(db: AsyncSession = Depends(get_db)):
    priorities = await LookupService.list_priorities(db)
    return [PriorityOut(id=p.id, name=p.name, sortOrder=p.sort_order) for p in priorities]
