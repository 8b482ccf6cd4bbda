from collections import defaultdict
from typing import Dict, List, Optional, Sequence
from sqlalchemy import select
from storefront.schema.full_schema import OrderItem, Orders, Users


async def order_by_public_id(session, public_id: str) -> Optional[Orders]:
    stmt = select(Orders).where(Orders.public_id == public_id)
    return (await session.execute(stmt)).scalar_one_or_none()


async def items_by_order_ids(session, order_ids: Sequence[int]) -> Dict[int, List[OrderItem]]:
    grouped: Dict[int, List[OrderItem]] = defaultdict(list)
    if not order_ids:
        return grouped
    stmt = select(OrderItem).where(OrderItem.order_id.in_(list(order_ids))).order_by(OrderItem.order_id, OrderItem.position)
    for item in (await session.execute(stmt)).scalars().all():
        grouped[item.order_id].append(item)
    return grouped


async def place_order_with_items(session, values: dict, items: List[dict]) -> Orders:
    """Order and its lines go in together , the caller owns the commit."""
    order = Orders(**values)
    session.add(order)
    await session.flush()

    for position, item in enumerate(items):
        session.add(OrderItem(order_id=order.id, position=position, **item))
    await session.flush()
    return order


async def orders_by_user(session, user_id: int) -> List[Orders]:
    stmt = (
        select(Orders)
        .where(Orders.user_id == user_id)
        .order_by(Orders.created_at.desc(), Orders.id.desc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def all_orders_with_owner(session) -> List[tuple]:
    stmt = (
        select(Orders, Users.public_id)
        .outerjoin(Users, Users.id == Orders.user_id)
        .order_by(Orders.created_at.desc(), Orders.id.desc())
    )
    return [(row[0], row[1]) for row in (await session.execute(stmt)).all()]


async def owner_public_id(session, user_id: Optional[int]):
    if user_id is None:
        return None
    stmt = select(Users.public_id).where(Users.id == user_id)
    return (await session.execute(stmt)).scalar_one_or_none()
