from typing import Mapping, Optional
from pydantic import ValidationError as PydanticValidationError
from storefront.cart import reducer
from storefront.cart.constants import logger
from storefront.cart.models import CartLine, LineKey, ProductRef
from storefront.client.cache import CacheKey, ClientCache


class CartStateMachine:
    """
    Holds the cart for one client and mirrors every change into the client
    cache , so a restarted client picks up where it left off.
    """

    def __init__(self, cache: ClientCache):
        self.cache = cache
        self._lines: reducer.Lines = ()

    @property
    def lines(self) -> reducer.Lines:
        return self._lines

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def restore(self) -> reducer.Lines:
        snapshot = self.cache.load(CacheKey.CART, [])
        try:
            self._lines = tuple(CartLine.model_validate(item) for item in snapshot)
        except (PydanticValidationError, TypeError) as e:
            # an unreadable snapshot is dropped , the cart starts empty
            logger.warning("cart.restore.discarded", extra={"error": str(e)})
            self._lines = ()
            self.cache.clear(CacheKey.CART)
        return self._lines

    def _commit(self, lines: reducer.Lines) -> reducer.Lines:
        self._lines = lines
        self.cache.save(CacheKey.CART, [line.model_dump(by_alias=True, mode="json") for line in lines])
        return lines

    def add(self, product: ProductRef, variants: Optional[Mapping[str, str]] = None) -> reducer.Lines:
        return self._commit(reducer.add(self._lines, product, variants))

    def remove(self, key: LineKey) -> reducer.Lines:
        return self._commit(reducer.remove(self._lines, key))

    def set_quantity(self, key: LineKey, delta: int) -> reducer.Lines:
        return self._commit(reducer.set_quantity(self._lines, key, delta))

    def clear(self) -> reducer.Lines:
        self._lines = reducer.clear()
        self.cache.clear(CacheKey.CART)
        return self._lines

    def total(self) -> float:
        return reducer.total(self._lines)

    def item_count(self) -> int:
        return reducer.item_count(self._lines)
