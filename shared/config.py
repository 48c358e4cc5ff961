"""
Configuration module - Central access point for environment variables.

CRITICAL: Access ALL environment variables through this module.
NEVER use os.getenv() directly in application code.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Flow engine settings loaded from environment variables."""

    # Application Settings
    TIMEZONE: str = Field(
        default="America/Argentina/Buenos_Aires",
        description="Fallback business timezone when the conversation carries an invalid one"
    )
    LOG_LEVEL: str = Field(default="INFO")

    # Business categories
    FLOW_BUSINESS_TYPES: str = Field(
        default="HEALTH",
        description="Comma-separated business types handled by the scheduling flow"
    )
    COVERAGE_BUSINESS_TYPES: str = Field(
        default="HEALTH",
        description="Comma-separated business types that require insurance and consult reason"
    )

    # Profile field rules
    DNI_MIN_DIGITS: int = Field(default=7)
    DNI_MAX_DIGITS: int = Field(default=10)
    BIRTH_YEAR_PIVOT: int = Field(
        default=40,
        description="Two-digit years below the pivot map to 2000s, the rest to 1900s"
    )
    CONSULT_REASON_MAX_LENGTH: int = Field(default=160)
    PLACEHOLDER_PATIENT_NAME: str = Field(
        default="Paciente WhatsApp",
        description="Name written over the stored one when onboarding is restarted"
    )

    # Channel rendering
    MENU_HINT: str = Field(
        default='Escribí "menu" para ver las opciones (sacar, reprogramar o cancelar turno).',
        description="Hint appended to outgoing messages for non-retail businesses"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @property
    def flow_business_types(self) -> set[str]:
        """Business types that use the scheduling flow."""
        return _split_csv(self.FLOW_BUSINESS_TYPES)

    @property
    def coverage_business_types(self) -> set[str]:
        """Business types whose onboarding asks for insurance and consult reason."""
        return _split_csv(self.COVERAGE_BUSINESS_TYPES)


def _split_csv(value: str) -> set[str]:
    return {item.strip().upper() for item in value.split(",") if item.strip()}


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
