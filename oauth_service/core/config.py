"""Application configuration"""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_prefix="OAUTH_SERVICE__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: str = "development"
    port: int = 8004

    # Storage
    db_url: str = "sqlite:///data/oauth.db"
    storage_backend: str = "sqlalchemy"  # "sqlalchemy" or "memory"

    # Lifetimes (in seconds)
    access_token_lifetime: int = 3600  # 1 hour
    refresh_token_lifetime: int = 2592000  # 30 days
    authorization_code_lifetime: int = 600  # 10 minutes

    # Revoke every active token of a client/user pair when a revoked
    # refresh token is presented again
    revoke_lineage_on_reuse: bool = False

    # CORS
    cors_allow_origin: str = "*"
    cors_allow_headers: str = "authorization, x-client-info, apikey, content-type"

    # Logging
    log_level: str = "INFO"

    # Version
    version: str = "0.1.0"

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.environment.lower() == "development"


# Create settings instance
settings = Settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger("oauth-service")
