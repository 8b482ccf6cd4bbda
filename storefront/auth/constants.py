from datetime import timedelta
from storefront.config.settings import config_settings
from storefront.common.logging_setup import get_logger

logger = get_logger("storefront.auth")

SESSION_TOKEN_LIFETIME = timedelta(days=int(config_settings.SESSION_TOKEN_EXPIRE_DAYS))

SESSION_HEADER_NAME = config_settings.SESSION_HEADER_NAME

FEDERATED_PROVIDER = config_settings.FEDERATED_PROVIDER
