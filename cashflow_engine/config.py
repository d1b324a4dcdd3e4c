"""Configuration management using Pydantic Settings"""

from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Average monthly spend for Australian households, by category
DEFAULT_CATEGORY_BENCHMARKS: Dict[str, float] = {
    "Food & Dining": 800,
    "Groceries": 600,
    "Dining Out": 200,
    "Subscriptions": 100,
    "Entertainment": 150,
    "Utilities": 350,
    "Transport": 400,
    "Insurance": 300,
    "Shopping": 250,
    "Health": 150,
}


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "cashflow-engine"
    log_level: str = "INFO"

    # Forecasting
    default_forecast_days: int = 90
    max_forecast_days: int = 1825  # 5 years
    include_confidence_bands: bool = True

    # Optimisation benchmarks (JSON object in CATEGORY_BENCHMARKS)
    category_benchmarks: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_BENCHMARKS)
    )

    # Stress testing
    stress_test_workers: int = 1  # >1 runs scenarios on a thread pool


settings = Settings()
