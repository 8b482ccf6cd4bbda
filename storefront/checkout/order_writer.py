"""
Where placed orders go.

The remote order store is the primary tier. When it cannot be reached the
order is parked in the client cache instead , checkout never fails because
the backend is down. Parked orders are replayed later by `reconcile()`,
the server treats a replayed order id as the same order.
"""
from dataclasses import dataclass
from typing import List, Optional, Protocol
from pydantic import ValidationError as PydanticValidationError
from storefront.checkout.constants import logger
from storefront.checkout.models import StorageTier
from storefront.client.api import StorefrontClient
from storefront.client.cache import CacheKey, ClientCache, current_owner_id
from storefront.common.constants import GUEST_USER_ID
from storefront.common.custom_exceptions import StorageError, StorefrontError
from storefront.common.utils import as_utc
from storefront.orders.models import Order


@dataclass(frozen=True)
class WriteResult:
    order: Order
    tier: StorageTier


class OrderWriter(Protocol):
    async def write(self, order: Order) -> WriteResult:
        ...


class ApiOrderWriter:

    def __init__(self, client: StorefrontClient):
        self.client = client

    async def write(self, order: Order) -> WriteResult:
        stored = await self.client.create_order(order)
        return WriteResult(order=stored, tier=StorageTier.PRIMARY)


class CachedOrderQueue:

    def __init__(self, cache: ClientCache):
        self.cache = cache

    def pending(self) -> List[Order]:
        queued = []
        for raw in self.cache.load(CacheKey.FALLBACK_ORDERS, []):
            try:
                queued.append(Order.model_validate(raw))
            except PydanticValidationError as e:
                logger.warning("checkout.fallback.unreadable", extra={"error": str(e)})
        return queued

    def replace(self, orders: List[Order]) -> None:
        if orders:
            self.cache.save(CacheKey.FALLBACK_ORDERS, [o.to_json() for o in orders])
        else:
            self.cache.clear(CacheKey.FALLBACK_ORDERS)

    async def write(self, order: Order) -> WriteResult:
        queued = [o for o in self.pending() if o.id != order.id]
        queued.append(order)
        self.replace(queued)
        return WriteResult(order=order, tier=StorageTier.FALLBACK)


class TieredOrderWriter:

    def __init__(self, primary: OrderWriter, fallback: CachedOrderQueue):
        self.primary = primary
        self.fallback = fallback

    async def write(self, order: Order) -> WriteResult:
        try:
            return await self.primary.write(order)
        except StorageError as e:
            logger.warning("checkout.primary_write_failed", extra={"order_id": order.id, "error": e.message})

        result = await self.fallback.write(order)
        logger.info("checkout.fallback_persisted", extra={"order_id": order.id})
        return result

    async def reconcile(self) -> List[Order]:
        """
        Push parked orders to the primary tier , returns the ones it accepted.

        The server takes ownership from the session of the caller, so only
        orders parked by the identity signed in now (or guest orders while
        nobody is signed in) are replayed. The rest wait for their owner.
        """
        owner = current_owner_id(self.fallback.cache)
        accepted: List[Order] = []
        remaining: List[Order] = []
        last_error: Optional[str] = None
        skipped = 0

        for order in self.fallback.pending():
            if order.user_id != owner:
                skipped += 1
                remaining.append(order)
                continue
            try:
                result = await self.primary.write(order)
            except StorageError as e:
                last_error = e.message
                remaining.append(order)
                continue
            except StorefrontError as e:
                # rejected orders stay parked for manual follow up
                logger.warning("checkout.reconcile.rejected", extra={"order_id": order.id, "code": e.code})
                remaining.append(order)
                continue
            accepted.append(result.order)

        self.fallback.replace(remaining)
        logger.info("checkout.reconciled", extra={
            "accepted": len(accepted),
            "remaining": len(remaining),
            "other_owner": skipped,
            "last_error": last_error,
        })
        return accepted


@dataclass(frozen=True)
class OrderHistoryEntry:
    order: Order
    pending_sync: bool = False


async def order_history(client: StorefrontClient, queue: CachedOrderQueue) -> List[OrderHistoryEntry]:
    """
    Purchase history of the current identity, newest first.

    Server orders are merged with orders still parked on this device. Parked
    ones are flagged `pending_sync` until a reconcile gets them accepted. When
    the backend is unreachable the parked orders are all there is.
    """
    owner = current_owner_id(client.cache)
    entries = {}

    if owner != GUEST_USER_ID:
        try:
            for order in await client.list_orders():
                entries[order.id] = OrderHistoryEntry(order=order)
        except StorageError as e:
            logger.warning("checkout.history.remote_unavailable", extra={"error": e.message})

    for order in queue.pending():
        if order.user_id == owner and order.id not in entries:
            entries[order.id] = OrderHistoryEntry(order=order, pending_sync=True)

    return sorted(entries.values(), key=lambda entry: as_utc(entry.order.created_at), reverse=True)
