# ==== APPLICATION SETTINGS CONFIGURATION ==== #

"""
Application settings configuration for the smart contract engine.

All tunables live on one Pydantic Settings class read from the environment
(and an optional .env file): policy locations, lifecycle strictness,
reminder dedupe and observability.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


# ==== MAIN SETTINGS CLASS ==== #


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Every field has a default so the engine can be imported and used as an
    in-process library without any environment preparation.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

    # --► CORE APPLICATION SETTINGS
    APP_ENV: str = "dev"
    SERVICE_NAME: str = "contract-engine"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str | None = None

    # --► POLICY CONFIGURATION
    POLICY_DIR: str | None = None
    RULE_CATALOG_FILE: str = "default_rules.yaml"
    TRADE_TYPES_FILE: str = "trade_types.yaml"

    # --► WORKFLOW BEHAVIOUR
    STRICT_LIFECYCLE_TRANSITIONS: bool = False
    REMINDER_DEDUPE_ENABLED: bool = True

    # --► OBSERVABILITY CONFIGURATION
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None
    OTEL_EXPORTER_OTLP_HEADERS: str | None = None
    OTEL_SERVICE_NAME: str | None = None
    OTEL_RESOURCE_ATTRIBUTES: str | None = None


# ==== GLOBAL SETTINGS INSTANCE ==== #


# Read once at import; tests construct their own Settings
settings = Settings()


def get_settings() -> Settings:
    """
    Settings read from the environment at import time.

    Returns:
        Settings: Shared engine settings
    """
    return settings
