from storefront.schema.user import Users
from storefront.schema.user_creds import Credential, CredentialType
from storefront.schema.order import OrderItem, Orders, OrderStatus, PaymentMethod

__all__ = [
    "Users",
    "Credential",
    "CredentialType",
    "Orders",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
]
