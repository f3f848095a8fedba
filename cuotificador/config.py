"""Configuration management using Pydantic Settings"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./cuotificador.db"

    # Payment provider (banks may override URL and credentials)
    payway_base_url: str = "https://api.sandbox.payway.com.ar/v1"
    payway_api_key: str = ""
    payway_secret_key: str = ""
    payway_merchant_id: str = ""
    token_expiry_margin_seconds: int = 300  # Refresh tokens 5 minutes before they expire
    default_token_ttl_seconds: int = 3600

    # Service
    service_name: str = "cuotificador"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0

    # Permissions granted to this process, e.g. '["cuotificador.configurar_tasas"]'
    granted_capabilities: List[str] = []

    # Installment schedule
    installment_interval_days: int = 30


settings = Settings()
