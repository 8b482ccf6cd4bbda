from storefront.common.logging_setup import get_logger
from storefront.config.settings import config_settings

logger = get_logger("storefront.orders")

UTR_MIN_LENGTH = int(config_settings.UTR_MIN_LENGTH)
ORDER_ID_MAX_LENGTH = 64

# column widths in schema/order.py
UTR_MAX_LENGTH = 64
PRODUCT_ID_MAX_LENGTH = 64
PRODUCT_NAME_MAX_LENGTH = 255
SHIPPING_NAME_MAX_LENGTH = 128
SHIPPING_EMAIL_MAX_LENGTH = 320
SHIPPING_PHONE_MAX_LENGTH = 32
SHIPPING_CITY_MAX_LENGTH = 128
