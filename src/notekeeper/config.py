from pydantic import Field
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    database_timeout_ms: int = 5000  # Upper bound for every MongoDB operation
    host: str
    port: int
    debug: bool
    access_token_secret: str = Field(..., min_length=32)  # HMAC key for access tokens
    access_token_ttl_minutes: int = Field(default=15, ge=1)
    refresh_token_ttl_days: int = Field(default=7, ge=1)
    jwt_algorithm: str = "HS256"
    cors_origins: list[str] = []

    model_config = {
        "env_file": [".env"],
        "env_prefix": "NOTEKEEPER_",
        "extra": "ignore",
    }
