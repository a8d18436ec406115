"""Configuration settings for the DeltaNEAR Intents API."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All variables use the DELTANEAR_ prefix, e.g. DELTANEAR_PORT=8080.

    - DELTANEAR_GUARDRAILS_FILE: Optional YAML guardrail/venue configuration.
      Without it, default guardrails apply and no venues are configured.
    - DELTANEAR_SIMULATION_VALIDITY_SECONDS: Freshness window for simulations.
    """

    model_config = SettingsConfigDict(
        env_prefix="DELTANEAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # CORS
    allowed_origins: List[str] = ["*"]

    # Simulation gate
    simulation_validity_seconds: int = 300
    nonce_expiry_seconds: int = 3600
    solver_id: str = "solver.deltanear.near"

    # Guardrails
    guardrails_file: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
