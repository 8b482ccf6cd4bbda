from dataclasses import dataclass
from enum import Enum
from storefront.orders.models import Order


class CheckoutStage(str, Enum):
    SHIPPING_DETAILS = "shipping_details"
    PAYMENT = "payment"
    PLACING_ORDER = "placing_order"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StorageTier(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class PaymentRequest:
    upi_uri: str
    qr_image_url: str
    amount: float


@dataclass(frozen=True)
class CheckoutReceipt:
    order: Order
    stored_in: StorageTier

    @property
    def persisted_remotely(self) -> bool:
        return self.stored_in == StorageTier.PRIMARY
