from typing import List

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.duration import duration_seconds

load_dotenv(override=True)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "SIWE Auth"
    # Application settings
    PORT: int = 3000
    HOST: str = "127.0.0.1"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    IS_PRODUCTION: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # SQLAlchemy database URL
    DATABASE_URL: str = "sqlite:///./siwe_auth.db"

    # Login configuration
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_SECRET: str = "your-secret-key-change-in-production"
    JWT_ACCESS_EXPIRES_IN: str = "1h"
    JWT_REFRESH_SECRET: str = "your-refresh-secret-key"
    JWT_REFRESH_EXPIRES_IN: str = "7d"
    SIWE_DOMAIN: str | None = None

    # Redis settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str | None = None
    REDIS_DB: int = 0
    REDIS_SSL: bool = False
    REDIS_MAX_CONNECTIONS: int = 50
    SESSION_KEY_PREFIX: str = ""

    # AuthorizedUserProfile contract (on-chain mirror, optional)
    CONTRACT_RPC_URL: str | None = None
    CONTRACT_PRIVATE_KEY: str | None = None
    CONTRACT_ADDRESS: str | None = None
    CONTRACT_ABI_PATH: str | None = None
    CONTRACT_POLL_INTERVAL_SECONDS: int = 15

    @field_validator("JWT_ACCESS_EXPIRES_IN", "JWT_REFRESH_EXPIRES_IN")
    @classmethod
    def validate_expires_in(cls, v: str) -> str:
        if duration_seconds(v) <= 0:
            raise ValueError("token expiration must be a positive duration")
        return v

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        if not self.JWT_ACCESS_SECRET or not self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET are required")
        if self.JWT_ACCESS_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("access and refresh tokens must use different secrets")
        return self

    @property
    def access_expires_seconds(self) -> int:
        return duration_seconds(self.JWT_ACCESS_EXPIRES_IN)

    @property
    def refresh_expires_seconds(self) -> int:
        return duration_seconds(self.JWT_REFRESH_EXPIRES_IN)

    @property
    def contract_enabled(self) -> bool:
        return all(
            (
                self.CONTRACT_RPC_URL,
                self.CONTRACT_PRIVATE_KEY,
                self.CONTRACT_ADDRESS,
                self.CONTRACT_ABI_PATH,
            )
        )


# Instantiate the settings
settings = Settings()
