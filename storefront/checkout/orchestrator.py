from datetime import datetime
from typing import Callable, Mapping, Optional, Union
from pydantic import ValidationError as PydanticValidationError
from uuid6 import uuid7
from storefront.cart.state_machine import CartStateMachine
from storefront.checkout.constants import logger
from storefront.checkout.models import CheckoutReceipt, CheckoutStage, PaymentRequest
from storefront.checkout.order_writer import OrderWriter
from storefront.checkout.utils import build_qr_image_url, build_upi_uri
from storefront.client.cache import ClientCache, current_owner_id
from storefront.common.custom_exceptions import ValidationError
from storefront.common.utils import now
from storefront.orders.models import Order, OrderLine, ShippingAddress
from storefront.orders.utils import validate_payment_reference
from storefront.schema.order import OrderStatus, PaymentMethod


def new_order_id() -> str:
    return str(uuid7())


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ()))
    return f"{field}: {err.get('msg')}" if field else str(err.get("msg"))


class CheckoutOrchestrator:
    """
    Walks one checkout from shipping details to a placed order.

    SHIPPING_DETAILS -> PAYMENT -> PLACING_ORDER -> COMPLETED , with `back()`
    from PAYMENT and `cancel()` from any open stage. The order id is fixed on
    the first placement attempt and reused by retries, so the server sees a
    retried checkout as the same order. The cart is only cleared once the
    order has been written to one of the storage tiers.
    """

    def __init__(self, cart: CartStateMachine, writer: OrderWriter, cache: ClientCache, *,
                 id_factory: Callable[[], str] = new_order_id, clock: Callable[[], datetime] = now):
        if cart.is_empty:
            raise ValidationError("Your cart is empty")
        self.cart = cart
        self.writer = writer
        self.cache = cache
        self.id_factory = id_factory
        self.clock = clock

        self.stage = CheckoutStage.SHIPPING_DETAILS
        self.shipping: Optional[ShippingAddress] = None
        self.payment_method: Optional[PaymentMethod] = None
        self.order_id: Optional[str] = None
        self.receipt: Optional[CheckoutReceipt] = None

    def _require(self, *stages: CheckoutStage) -> None:
        if self.stage not in stages:
            raise ValidationError(f"Checkout is at {self.stage.value}, expected {' or '.join(s.value for s in stages)}")

    def submit_shipping(self, details: Union[ShippingAddress, Mapping[str, str]]) -> CheckoutStage:
        self._require(CheckoutStage.SHIPPING_DETAILS)
        if not isinstance(details, ShippingAddress):
            try:
                details = ShippingAddress.model_validate(dict(details))
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid shipping details: {_first_error(e)}") from e

        blank = details.blank_fields()
        if blank:
            raise ValidationError(f"Missing shipping details: {', '.join(blank)}")

        self.shipping = details.model_copy(update={f: getattr(details, f).strip() for f in ShippingAddress.model_fields})
        self.stage = CheckoutStage.PAYMENT
        return self.stage

    def back(self) -> CheckoutStage:
        self._require(CheckoutStage.PAYMENT)
        self.stage = CheckoutStage.SHIPPING_DETAILS
        return self.stage

    def select_payment(self, method: Union[PaymentMethod, str]) -> PaymentMethod:
        self._require(CheckoutStage.PAYMENT)
        try:
            self.payment_method = PaymentMethod(method)
        except ValueError as e:
            raise ValidationError(f"Unsupported payment method: {method}") from e
        return self.payment_method

    def payment_request(self) -> PaymentRequest:
        """UPI intent and its QR image for the current cart total."""
        self._require(CheckoutStage.PAYMENT)
        amount = self.cart.total()
        uri = build_upi_uri(amount)
        return PaymentRequest(upi_uri=uri, qr_image_url=build_qr_image_url(uri), amount=amount)

    def _build_order(self, utr: Optional[str]) -> Order:
        try:
            lines = [
                OrderLine(
                    product_id=line.product_id,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    selected_variants=dict(line.selected_variants),
                )
                for line in self.cart.lines
            ]
            return Order(
                id=self.order_id,
                user_id=current_owner_id(self.cache),
                items=lines,
                total_amount=self.cart.total(),
                shipping_address=self.shipping,
                payment_method=self.payment_method,
                utr_reference=utr,
                status=OrderStatus.PENDING,
                created_at=self.clock(),
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid order: {_first_error(e)}") from e

    async def place_order(self, utr_reference: Optional[str] = None) -> CheckoutReceipt:
        self._require(CheckoutStage.PAYMENT)
        if self.payment_method is None:
            raise ValidationError("Select a payment method")
        if self.cart.is_empty:
            raise ValidationError("Your cart is empty")

        # cash on delivery never carries a payment reference
        if self.payment_method != PaymentMethod.UPI:
            utr_reference = None
        utr = validate_payment_reference(self.payment_method, utr_reference)
        if self.order_id is None:
            self.order_id = self.id_factory()
        order = self._build_order(utr)

        # a second submit while this write is pending fails the stage check above
        self.stage = CheckoutStage.PLACING_ORDER
        try:
            result = await self.writer.write(order)
        except BaseException:
            self.stage = CheckoutStage.PAYMENT
            raise

        self.cart.clear()
        self.stage = CheckoutStage.COMPLETED
        self.receipt = CheckoutReceipt(order=result.order, stored_in=result.tier)
        logger.info("checkout.completed", extra={
            "order_id": result.order.id,
            "payment_method": self.payment_method.value,
            "stored_in": result.tier.value,
        })
        return self.receipt

    def cancel(self) -> CheckoutStage:
        self._require(CheckoutStage.SHIPPING_DETAILS, CheckoutStage.PAYMENT)
        self.shipping = None
        self.payment_method = None
        self.stage = CheckoutStage.CANCELLED
        logger.debug("checkout.cancelled")
        return self.stage
