"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache

from pydantic_settings import BaseSettings

from underwriter.schemas import UnderwritingAssumptions


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "OM Underwriter"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Default underwriting assumptions
    default_vacancy: float = 0.05
    default_expense_ratio: float = 0.35
    default_market_cap_rate: float = 0.06
    default_loan_to_value: float = 0.65
    default_interest_rate: float = 0.06
    default_amortization_years: int = 30
    default_rent_growth_rate: float = 0.03
    default_expense_growth_rate: float = 0.02
    default_exit_cap_rate: float = 0.065
    default_analysis_term: int = 5

    # Field extraction (OpenAI)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    extraction_max_chars: int = 4000
    extraction_temperature: float = 0.1
    extraction_max_tokens: int = 500
    extraction_timeout_seconds: float = 60.0

    # Substitutes for fields the extraction could not find
    default_property_name: str = "Unknown Property"
    default_units: int = 100
    default_avg_rent: float = 1500.0
    default_occupancy: float = 0.95

    class Config:
        env_file = get_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"

    def default_assumptions(self) -> UnderwritingAssumptions:
        """Assumption set used for a first-pass underwriting."""
        return UnderwritingAssumptions(
            vacancy=self.default_vacancy,
            expense_ratio=self.default_expense_ratio,
            market_cap_rate=self.default_market_cap_rate,
            loan_to_value=self.default_loan_to_value,
            interest_rate=self.default_interest_rate,
            amortization_years=self.default_amortization_years,
            rent_growth_rate=self.default_rent_growth_rate,
            expense_growth_rate=self.default_expense_growth_rate,
            exit_cap_rate=self.default_exit_cap_rate,
            analysis_term=self.default_analysis_term,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
