"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_IP: str = "0.0.0.0"
    BACKEND_PORT: int = 8080

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None   # Set in .env to enable auth on API endpoints

    # ── Contract rules ────────────────────────────────────────────────────
    RULE_VERSION: str = "v3.0"              # Tag stamped on every new violation
    DEFAULT_GRACE_PERIOD_MINUTES: int = 0   # Used for seeded lots that declare none
    COUNT_HISTORY_SIZE: int = 25            # Observations kept per lot for sparklines

    # ── Simulation ────────────────────────────────────────────────────────
    SIMULATION_TICK_SECONDS: float = 5.0
    SIMULATION_AUTOSTART: bool = False
    SIMULATION_SEED: Optional[int] = None   # Fix for reproducible random walks

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
