"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Health risk analysis server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default. Binding elsewhere also needs hra_allow_insecure_bind
    # (there is no auth layer).
    hra_host: str = "127.0.0.1"
    hra_port: int = 3001
    hra_log_level: str = "info"
    hra_allow_insecure_bind: bool = False

    # HTTP surface
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    hra_expose_error_details: bool = False

    # Guardrail thresholds
    hra_min_confidence: float = 0.3
    hra_max_missing_percentage: float = 0.5
    hra_age_min: int = 0
    hra_age_max: int = 150
    hra_bmi_min: float = 10
    hra_bmi_max: float = 100
    hra_sleep_min: float = 0
    hra_sleep_max: float = 24

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
