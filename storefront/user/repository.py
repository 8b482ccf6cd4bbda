import uuid
from typing import Optional
from sqlalchemy import select
from storefront.schema.full_schema import Users


async def identify_user_by_pid(session, user_pid) -> Optional[Users]:
    try:
        user_pid = uuid.UUID(str(user_pid))
    except ValueError:
        return None
    stmt = select(Users).where(Users.public_id == user_pid, Users.deleted_at.is_(None))
    res = await session.execute(stmt)
    return res.scalar_one_or_none()
