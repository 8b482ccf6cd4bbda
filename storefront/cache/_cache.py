import redis.asyncio as redis
from storefront.config.settings import config_settings

redis_client = redis.Redis(
    host=config_settings.REDIS_HOST, port=config_settings.REDIS_PORT, db=config_settings.REDIS_DB,
    decode_responses=False)

REDIS_LOCK_TIMEOUT_MS = 5000
