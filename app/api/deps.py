from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_session
from app.services.sql_stores import build_sql_stores
from app.services.stores import SchedulingStores


async def get_stores(session: AsyncSession = Depends(get_session)) -> SchedulingStores:
    return build_sql_stores(session)
