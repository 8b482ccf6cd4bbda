from fastapi import Request
from storefront.config.settings import config_settings
from storefront.otp.delivery import build_otp_channel
from storefront.otp.issuer import OneTimeCodeIssuer
from storefront.otp.store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore


def build_otp_store() -> KeyValueStore:
    if config_settings.OTP_STORE_BACKEND.lower() == "redis":
        return RedisKeyValueStore()
    return InMemoryKeyValueStore()


def build_otp_issuer() -> OneTimeCodeIssuer:
    return OneTimeCodeIssuer(build_otp_store(), build_otp_channel())


def get_otp_issuer(request: Request) -> OneTimeCodeIssuer:
    return request.app.state.otp_issuer
