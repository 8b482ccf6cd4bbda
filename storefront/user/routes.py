from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.auth.dependencies import current_user_public_id, session_token_header
from storefront.auth.services import get_identity
from storefront.common.utils import success_response
from storefront.db.dependencies import get_session

user_router = APIRouter(dependencies=[Depends(session_token_header)])


@user_router.get("/profile")
async def get_user_profile(user_public_id: str = Depends(current_user_public_id),
                           session: AsyncSession = Depends(get_session)):
    identity = await get_identity(session, user_public_id)
    return success_response(identity.model_dump(by_alias=True))
