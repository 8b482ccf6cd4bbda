from storefront.common.logging_setup import get_logger
from storefront.config.settings import config_settings

logger = get_logger("storefront.otp")

OTP_KEY_PREFIX = "otp"
OTP_LENGTH = 6

OTP_TTL_SECONDS = int(config_settings.OTP_TTL_SECONDS)
OTP_RESEND_INTERVAL_SECONDS = int(config_settings.OTP_RESEND_INTERVAL_SECONDS)
# the record outlives the code so the resend interval holds after expiry
OTP_RECORD_RETENTION_SECONDS = max(int(config_settings.OTP_RECORD_RETENTION_SECONDS), OTP_TTL_SECONDS)
