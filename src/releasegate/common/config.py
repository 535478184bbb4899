"""Releasegate configuration via pydantic-settings."""

import warnings
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from releasegate.common.exceptions import ConfigurationError
from releasegate.common.logging import get_logger

logger = get_logger("config")

SECRET_SOURCE_DEDICATED = "download_token_secret"
SECRET_SOURCE_AUTHORITY = "license_authority_token"
SECRET_SOURCE_SESSION = "session_token"


class ReleasegateSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RELEASEGATE_")

    environment: str = "development"
    log_level: str = "INFO"

    # API
    api_title: str = "Releasegate"
    api_version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:3000"]

    # Outbound HTTP
    http_timeout: float = 30.0

    # Commerce (order source + customer identity)
    commerce_url: str = "http://localhost:9000"
    commerce_publishable_key: str = ""
    commerce_orders_page_size: int = 50
    commerce_max_orders: int = 1000

    # License authority
    license_authority_url: str = "https://license.wcpos.com/v1"
    license_authority_token: str = ""

    # Release host
    release_host_url: str = "https://api.github.com"
    release_host_token: str = ""
    release_owner: str = "wcpos"
    release_repo: str = "woocommerce-pos-pro"
    release_product_slug: str = "woocommerce-pos-pro"
    release_asset_extension: str = ".zip"
    release_cache_ttl: int = 300  # seconds
    release_page_size: int = 100
    release_max_pages: int = 10

    # Download tokens
    download_token_secret: str = ""
    download_token_ttl: int = 60  # seconds
    download_path: str = "/account/download"

    @property
    def download_secret_source(self) -> Optional[str]:
        """Name of the configured secret the token service signs with.

        Returns None when nothing is configured, in which case each request
        falls back to the customer's own session token.
        """
        if self.download_token_secret:
            return SECRET_SOURCE_DEDICATED
        if self.license_authority_token:
            return SECRET_SOURCE_AUTHORITY
        return None

    def resolve_download_secret(self, session_token: Optional[str] = None) -> str:
        """Pick the download token signing secret.

        Order: dedicated secret, license authority token, session token.
        """
        if self.download_token_secret:
            return self.download_token_secret
        if self.license_authority_token:
            return self.license_authority_token
        if session_token:
            return session_token
        raise ConfigurationError("Download token secret not configured")

    def validate_for_production(self) -> None:
        """Raise if no signing secret is configured outside development."""
        source = self.download_secret_source

        if self.environment != "development" and source is None:
            raise RuntimeError(
                f"No download token secret configured in '{self.environment}' environment. "
                "Set RELEASEGATE_DOWNLOAD_TOKEN_SECRET to a dedicated secret. "
                "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if source != SECRET_SOURCE_DEDICATED:
            warnings.warn(
                "RELEASEGATE_DOWNLOAD_TOKEN_SECRET is not set — download tokens are signed "
                f"with the {source or SECRET_SOURCE_SESSION}; set a dedicated secret for production",
                UserWarning,
                stacklevel=2,
            )

    def log_secret_source(self) -> None:
        source = self.download_secret_source
        if source == SECRET_SOURCE_DEDICATED:
            logger.info("Download tokens signed with dedicated secret")
        elif source == SECRET_SOURCE_AUTHORITY:
            logger.warning("Download tokens signed with license authority token (no dedicated secret)")
        else:
            logger.warning("Download tokens signed with per-customer session tokens (no secret configured)")


@lru_cache
def get_settings() -> ReleasegateSettings:
    settings = ReleasegateSettings()
    settings.validate_for_production()
    return settings
