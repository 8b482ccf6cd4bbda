from datetime import datetime
from typing import Dict, List, Optional
from pydantic import Field
from storefront.auth.models import CamelModel
from storefront.common.constants import GUEST_USER_ID
from storefront.common.utils import now, to_minor_units
from storefront.orders.constants import (
    ORDER_ID_MAX_LENGTH, PRODUCT_ID_MAX_LENGTH, PRODUCT_NAME_MAX_LENGTH, SHIPPING_CITY_MAX_LENGTH,
    SHIPPING_EMAIL_MAX_LENGTH, SHIPPING_NAME_MAX_LENGTH, SHIPPING_PHONE_MAX_LENGTH, UTR_MAX_LENGTH,
)
from storefront.schema.order import OrderStatus, PaymentMethod


class ShippingAddress(CamelModel):
    name: str = Field(default="", max_length=SHIPPING_NAME_MAX_LENGTH)
    email: str = Field(default="", max_length=SHIPPING_EMAIL_MAX_LENGTH)
    phone: str = Field(default="", max_length=SHIPPING_PHONE_MAX_LENGTH)
    address: str = ""
    city: str = Field(default="", max_length=SHIPPING_CITY_MAX_LENGTH)

    def blank_fields(self) -> List[str]:
        return [f for f in ("name", "email", "phone", "address", "city") if not getattr(self, f).strip()]


class OrderLine(CamelModel):
    product_id: str = Field(..., max_length=PRODUCT_ID_MAX_LENGTH)
    name: str = Field(..., max_length=PRODUCT_NAME_MAX_LENGTH)
    unit_price: float
    quantity: int
    selected_variants: Dict[str, str] = Field(default_factory=dict)

    @property
    def subtotal_minor(self) -> int:
        return to_minor_units(self.unit_price) * self.quantity


class OrderDraft(CamelModel):
    """What a client submits , ownership, status and timestamps are decided by the server."""
    id: Optional[str] = Field(default=None, max_length=ORDER_ID_MAX_LENGTH)
    items: List[OrderLine]
    total_amount: float
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    utr_reference: Optional[str] = Field(default=None, max_length=UTR_MAX_LENGTH)


class Order(OrderDraft):
    id: str
    user_id: str = GUEST_USER_ID
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=now)

    def to_draft(self) -> OrderDraft:
        return OrderDraft.model_validate(self.model_dump(include=set(OrderDraft.model_fields)))

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
