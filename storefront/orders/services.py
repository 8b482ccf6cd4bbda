from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from uuid6 import uuid7
from storefront.common.custom_exceptions import NotFound, Unauthorized, ValidationError
from storefront.common.utils import now, to_minor_units
from storefront.orders.constants import logger
from storefront.orders.models import Order, OrderDraft
from storefront.orders.repository import (
    all_orders_with_owner, items_by_order_ids, order_by_public_id, orders_by_user, owner_public_id,
    place_order_with_items,
)
from storefront.orders.utils import order_from_rows, validate_draft
from storefront.schema.full_schema import OrderStatus


async def _existing_for_owner(session, order_id: str, owner_id: Optional[int]) -> Optional[Order]:
    existing = await order_by_public_id(session, order_id)
    if existing is None:
        return None
    if existing.user_id != owner_id:
        logger.warning("order.create.id_taken", extra={"order_id": order_id})
        raise ValidationError("Order id is already in use")
    items = await items_by_order_ids(session, [existing.id])
    return order_from_rows(existing, items[existing.id], await owner_public_id(session, owner_id))


async def create_order(session, draft: OrderDraft, owner_id: Optional[int] = None,
                       owner_pid: Optional[str] = None) -> Tuple[Order, bool]:
    """
    Persist an order for `owner_id` (None for guests).

    Creation is idempotent on the order id: resubmitting an id the same owner
    already stored returns the stored order and `created=False`.
    """
    utr = validate_draft(draft)
    order_id = draft.id or str(uuid7())

    replay = await _existing_for_owner(session, order_id, owner_id)
    if replay is not None:
        logger.info("order.create.replayed", extra={"order_id": order_id})
        return replay, False

    values = {
        "public_id": order_id,
        "user_id": owner_id,
        "total_amount": to_minor_units(draft.total_amount),
        "payment_method": draft.payment_method.value,
        "utr_reference": utr,
        "status": OrderStatus.PENDING.value,
        "shipping_name": draft.shipping_address.name.strip(),
        "shipping_email": draft.shipping_address.email.strip(),
        "shipping_phone": draft.shipping_address.phone.strip(),
        "shipping_address_text": draft.shipping_address.address.strip(),
        "shipping_city": draft.shipping_address.city.strip(),
        "created_at": now(),
    }
    items = [
        {
            "product_id": line.product_id,
            "product_name": line.name,
            "unit_price": to_minor_units(line.unit_price),
            "quantity": line.quantity,
            "selected_variants": dict(line.selected_variants),
        }
        for line in draft.items
    ]

    try:
        order = await place_order_with_items(session, values, items)
        await session.commit()
    except IntegrityError:
        # a concurrent submit of the same id won
        await session.rollback()
        replay = await _existing_for_owner(session, order_id, owner_id)
        if replay is None:
            raise
        logger.info("order.create.replayed", extra={"order_id": order_id})
        return replay, False

    items_map = await items_by_order_ids(session, [order.id])
    logger.info("order.created", extra={
        "order_id": order_id,
        "user_public_id": owner_pid,
        "payment_method": draft.payment_method.value,
        "total_amount": values["total_amount"],
    })
    return order_from_rows(order, items_map[order.id], owner_pid), True


async def list_orders_for_user(session, user_id: int, user_pid: str) -> List[Order]:
    orders = await orders_by_user(session, user_id)
    items = await items_by_order_ids(session, [o.id for o in orders])
    return [order_from_rows(o, items[o.id], user_pid) for o in orders]


async def get_order_for_user(session, order_id: str, requester_id: int, requester_pid: str) -> Order:
    order = await order_by_public_id(session, order_id)
    if order is None:
        raise NotFound("Order not found")
    if order.user_id != requester_id:
        logger.warning("order.access_denied", extra={"order_id": order_id, "user_public_id": requester_pid})
        raise Unauthorized("Order belongs to another user")
    items = await items_by_order_ids(session, [order.id])
    return order_from_rows(order, items[order.id], requester_pid)


async def list_all_orders(session) -> List[Order]:
    rows = await all_orders_with_owner(session)
    items = await items_by_order_ids(session, [o.id for o, _ in rows])
    return [order_from_rows(o, items[o.id], pid) for o, pid in rows]
