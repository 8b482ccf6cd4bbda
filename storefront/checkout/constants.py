from storefront.common.logging_setup import get_logger
from storefront.config.settings import config_settings

logger = get_logger("storefront.checkout")

MERCHANT_UPI_ID = config_settings.MERCHANT_UPI_ID
MERCHANT_NAME = config_settings.MERCHANT_NAME
PAYMENT_NOTE = config_settings.PAYMENT_NOTE
CURRENCY = config_settings.CURRENCY

QR_SERVICE_URL = "https://api.qrserver.com/v1/create-qr-code/"
QR_SIZE = "250x250"
