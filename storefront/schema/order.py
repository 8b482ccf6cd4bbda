from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlmodel import SQLModel, Field
from storefront.common.utils import now


class OrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"


class PaymentMethod(str, Enum):
    UPI = "UPI"
    COD = "COD"


class Orders(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    # client generated order id , doubles as the idempotency key for creation
    public_id: str = Field(sa_column=Column(String(64), unique=True, index=True, nullable=False))
    # null for guest checkout
    user_id: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id"), index=True, nullable=True))

    total_amount: int = Field(default=0, sa_column=Column(Integer, nullable=False))  # paise
    payment_method: str = Field(sa_column=Column(String(8), nullable=False))
    utr_reference: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    status: str = Field(default=OrderStatus.PENDING.value, sa_column=Column(String(16), nullable=False))

    # snapshot contact & address (immutable for this order)
    shipping_name: str = Field(sa_column=Column(String(128), nullable=False))
    shipping_email: str = Field(sa_column=Column(String(320), nullable=False))
    shipping_phone: str = Field(sa_column=Column(String(32), nullable=False))
    shipping_address_text: str = Field(sa_column=Column(Text(), nullable=False))
    shipping_city: str = Field(sa_column=Column(String(128), nullable=False))

    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now, index=True))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now, onupdate=now))


class OrderItem(SQLModel, table=True):
    """Name , price and variant choices are snapshots , catalog changes never reach a placed order."""
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(sa_column=Column(ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False))
    product_id: str = Field(sa_column=Column(String(64), nullable=False))

    product_name: str = Field(sa_column=Column(String(255), nullable=False))
    unit_price: int = Field(default=0, sa_column=Column(Integer, nullable=False))  # paise snapshot
    quantity: int = Field(default=1, sa_column=Column(Integer, nullable=False))
    selected_variants: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    position: int = Field(default=0, sa_column=Column(Integer, nullable=False))
