from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "dev"                # "dev" / "staging" / "prod"
    SERVICE_NAME: str = "storefront"
    ADMIN_ROLE: str = "admin"
    DEFAULT_ROLE: str = "user"

    class Config:
        env_file = ".env"
        extra="ignore"

admin_config = Settings()
