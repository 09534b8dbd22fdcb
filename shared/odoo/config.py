"""
Configuration settings for the Odoo JSON-RPC client.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OdooSettings(BaseSettings):
    """Connection settings for the Odoo instance."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ODOO_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = Field(default="", description="Odoo base URL, e.g. https://erp.example.com")
    database: str = Field(default="", description="Odoo database name")
    username: str = Field(default="", description="Login used for authentication")
    api_key: str = Field(default="", description="API key (used as password for JSON-RPC)")
    user_id: int | None = Field(
        default=None,
        description="Static uid; when set, authentication is skipped entirely",
    )

    connection_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed to establish the TCP/TLS connection",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds allowed for the whole request, response included",
    )

    def missing_keys(self) -> list[str]:
        """
        List required connection keys that are empty.

        Returns:
            Environment variable names that still need a value
        """
        required = {
            "ODOO_URL": self.url,
            "ODOO_DATABASE": self.database,
            "ODOO_USERNAME": self.username,
            "ODOO_API_KEY": self.api_key,
        }
        return [key for key, value in required.items() if not value]


@lru_cache
def get_odoo_settings() -> OdooSettings:
    """
    Get cached Odoo settings instance.

    Returns:
        OdooSettings: Cached settings instance
    """
    return OdooSettings()
