from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.auth.dependencies import current_user_public_id, session_token_header
from storefront.common.utils import success_response
from storefront.config.admin_config import admin_config
from storefront.db.dependencies import get_session
from storefront.orders.dependencies import require_role
from storefront.orders.models import OrderDraft
from storefront.orders.services import create_order, get_order_for_user, list_all_orders, list_orders_for_user

orders_router = APIRouter(dependencies=[Depends(session_token_header)])


# anonymous callers check out as guest
@orders_router.post("/orders", status_code=status.HTTP_201_CREATED)
async def place_order(request: Request, payload: OrderDraft, session: AsyncSession = Depends(get_session)):

    order, created = await create_order(
        session, payload,
        owner_id=request.state.user_identifier,
        owner_pid=request.state.user_public_id,
    )
    return success_response(order.to_json(), status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@orders_router.get("/orders")
async def my_orders(request: Request, user_pid: str = Depends(current_user_public_id),
                    session: AsyncSession = Depends(get_session)):

    orders = await list_orders_for_user(session, request.state.user_identifier, user_pid)
    return success_response([o.to_json() for o in orders])


# declared before /orders/{order_id} so "all" is not taken for an id
@orders_router.get("/orders/all", dependencies=[require_role(admin_config.ADMIN_ROLE)])
async def all_orders(session: AsyncSession = Depends(get_session)):

    orders = await list_all_orders(session)
    return success_response([o.to_json() for o in orders])


@orders_router.get("/orders/{order_id}")
async def order_detail(request: Request, order_id: str, user_pid: str = Depends(current_user_public_id),
                       session: AsyncSession = Depends(get_session)):

    order = await get_order_for_user(session, order_id, request.state.user_identifier, user_pid)
    return success_response(order.to_json())
