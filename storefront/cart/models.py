from typing import Dict, Mapping, Optional, Tuple
from pydantic import Field
from storefront.auth.models import CamelModel
from storefront.common.utils import to_minor_units

# (product id, variant choices sorted by variant name)
LineKey = Tuple[str, Tuple[Tuple[str, str], ...]]


def line_key(product_id: str, variants: Optional[Mapping[str, str]] = None) -> LineKey:
    return product_id, tuple(sorted((variants or {}).items()))


class ProductRef(CamelModel):
    """The slice of a catalog product the cart needs."""
    id: str
    name: str
    price: float


class CartLine(CamelModel):
    product_id: str
    name: str
    unit_price: float
    quantity: int = Field(default=1, ge=1)
    selected_variants: Dict[str, str] = Field(default_factory=dict)

    @property
    def key(self) -> LineKey:
        return line_key(self.product_id, self.selected_variants)

    @property
    def subtotal_minor(self) -> int:
        return to_minor_units(self.unit_price) * self.quantity
