from pydantic_settings import BaseSettings

class Settings(BaseSettings):

    DATABASE_URL: str = "sqlite+aiosqlite:///./storefront.db"
    AUTO_CREATE_TABLES: bool = False

    JWT_SECRET: str = "dev-only-change-me"
    JWT_ALGO: str = "HS256"
    SESSION_TOKEN_EXPIRE_DAYS: int = 5
    SESSION_HEADER_NAME: str = "X-Auth-Token"
    PASS_HASH_SCHEME: str = "pbkdf2_sha256"

    OTP_TTL_SECONDS: int = 300
    OTP_RESEND_INTERVAL_SECONDS: int = 60
    OTP_RECORD_RETENTION_SECONDS: int = 900
    OTP_HASH_SECRET: str = "dev-only-otp-secret"
    OTP_STORE_BACKEND: str = "memory"           # "memory" / "redis"
    OTP_DELIVERY_BACKEND: str = "log"           # "log" / "webhook"
    OTP_DELIVERY_WEBHOOK_URL: str | None = None
    OTP_DELIVERY_TIMEOUT_SECONDS: float = 5.0

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    FEDERATED_PROVIDER: str = "google"
    FEDERATED_TOKENINFO_URL: str = "https://oauth2.googleapis.com/tokeninfo"
    FEDERATED_CLIENT_ID: str | None = None

    MERCHANT_UPI_ID: str = "merchant@upi"
    MERCHANT_NAME: str = "ALA Cosmetics"
    PAYMENT_NOTE: str = "ALA Order"
    CURRENCY: str = "INR"
    UTR_MIN_LENGTH: int = 8

    class Config:
        env_file = ".env"
        extra="ignore"

config_settings = Settings()
