from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", case_sensitive=True, extra="ignore"
    )

    # Application
    APP_NAME: str = "TrustEngine"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "API keys and OAuth 2.0 authorization server for third-party integrations"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"

    # Database
    DATABASE_URL: str = Field(..., description="SQLAlchemy async database URL")
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10
    # Disable pooling when running behind pgbouncer or in tests
    DATABASE_USE_NULL_POOL: bool = False

    # Platform session tokens (issued by the platform login, verified here)
    JWT_SECRET_KEY: str = Field(..., min_length=32)
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "opportunity-platform"
    JWT_AUDIENCE: str = "opportunity-platform-api"

    # API keys
    API_KEY_PREFIX: str = "opx_"
    API_KEY_DISPLAY_PREFIX_LENGTH: int = 12
    API_KEY_DEFAULT_RATE_LIMIT: int = 1000
    API_KEY_DEFAULT_RATE_LIMIT_WINDOW_SECONDS: int = 3600

    # OAuth 2.0 authorization server
    OAUTH_CLIENT_ID_PREFIX: str = "opx_client_"
    OAUTH_AUTHORIZATION_CODE_TTL_SECONDS: int = 600
    OAUTH_ACCESS_TOKEN_TTL_SECONDS: int = 3600
    OAUTH_REFRESH_TOKEN_TTL_DAYS: int = 30
    OAUTH_REVOKE_CASCADES_TO_REFRESH_TOKENS: bool = True

    # CORS
    CORS_ORIGINS: str | list[str] = ["http://localhost:3000", "http://localhost:8000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: str | list[str] = ["*"]
    CORS_ALLOW_HEADERS: str | list[str] = ["*"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> Any:
        if isinstance(v, str):
            if v.startswith("[") and v.endswith("]"):
                import json

                try:
                    return json.loads(v)
                except ValueError:
                    pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("CORS_ALLOW_METHODS", "CORS_ALLOW_HEADERS", mode="before")
    @classmethod
    def parse_lists(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


# Global settings instance
try:
    settings = Settings()
except Exception as e:
    print(f"Error loading settings: {e}")
    raise e
