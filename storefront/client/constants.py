from storefront.common.logging_setup import get_logger

logger = get_logger("storefront.client")

CACHE_PREFIX = "ala_"
DEFAULT_TIMEOUT_SECONDS = 10.0
