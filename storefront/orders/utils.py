from typing import Iterable, Optional
from storefront.common.constants import GUEST_USER_ID
from storefront.common.custom_exceptions import InvalidReference, ValidationError
from storefront.common.utils import as_utc, from_minor_units, to_minor_units
from storefront.orders.constants import UTR_MAX_LENGTH, UTR_MIN_LENGTH
from storefront.orders.models import Order, OrderDraft, OrderLine, ShippingAddress
from storefront.schema.full_schema import OrderItem, Orders, PaymentMethod


def normalize_utr(utr_reference: Optional[str]) -> Optional[str]:
    if utr_reference is None:
        return None
    return utr_reference.strip() or None


def validate_payment_reference(payment_method: PaymentMethod, utr_reference: Optional[str]) -> Optional[str]:
    utr = normalize_utr(utr_reference)
    if payment_method == PaymentMethod.UPI:
        if not utr or not UTR_MIN_LENGTH <= len(utr) <= UTR_MAX_LENGTH:
            raise InvalidReference()
        return utr
    if utr is not None:
        raise ValidationError("A payment reference is only accepted for UPI payments")
    return None


def compute_total_minor(items: Iterable[OrderLine]) -> int:
    return sum(line.subtotal_minor for line in items)


def validate_draft(draft: OrderDraft) -> Optional[str]:
    """Returns the normalised payment reference."""
    if not draft.items:
        raise ValidationError("Order must contain at least one item")

    for line in draft.items:
        if line.quantity < 1:
            raise ValidationError(f"Quantity for {line.product_id} must be at least 1")
        if line.unit_price < 0:
            raise ValidationError(f"Price for {line.product_id} cannot be negative")
        if not line.product_id.strip() or not line.name.strip():
            raise ValidationError("Every item needs a product id and name")

    blank = draft.shipping_address.blank_fields()
    if blank:
        raise ValidationError(f"Missing shipping details: {', '.join(blank)}")

    if to_minor_units(draft.total_amount) != compute_total_minor(draft.items):
        raise ValidationError("Order total does not match its items")

    return validate_payment_reference(draft.payment_method, draft.utr_reference)


def order_from_rows(order: Orders, items: Iterable[OrderItem], owner_public_id=None) -> Order:
    lines = [
        OrderLine(
            product_id=it.product_id,
            name=it.product_name,
            unit_price=from_minor_units(it.unit_price),
            quantity=it.quantity,
            selected_variants=dict(it.selected_variants or {}),
        )
        for it in sorted(items, key=lambda it: it.position)
    ]
    return Order(
        id=order.public_id,
        user_id=str(owner_public_id) if owner_public_id else GUEST_USER_ID,
        items=lines,
        total_amount=from_minor_units(order.total_amount),
        shipping_address=ShippingAddress(
            name=order.shipping_name,
            email=order.shipping_email,
            phone=order.shipping_phone,
            address=order.shipping_address_text,
            city=order.shipping_city,
        ),
        payment_method=PaymentMethod(order.payment_method),
        utr_reference=order.utr_reference,
        status=order.status,
        created_at=as_utc(order.created_at),
    )
