from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.common.utils import success_response
from storefront.db.dependencies import get_session

home_router = APIRouter()


# storage failures surface through the SQLAlchemyError handler as a 500
@home_router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    await session.execute(select(1))
    return success_response({"status": "healthy"})
