from fastapi import Depends, Request
from storefront.common.custom_exceptions import Forbidden, Unauthorized
from storefront.orders.constants import logger


def require_role(role: str):
    async def _checker(request: Request):
        user_role = getattr(request.state, "user_role", None)
        if user_role is None:
            raise Unauthorized("User not authenticated")
        if user_role != role:
            logger.warning("order.role_denied", extra={
                "user_public_id": request.state.user_public_id,
                "required_role": role,
            })
            raise Forbidden()
        return True

    return Depends(_checker)
