from storefront.common.logging_setup import get_logger, request_id_ctx

logger = get_logger("storefront.common")

GUEST_USER_ID = "guest"
