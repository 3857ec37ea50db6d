"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./budget_gateway.db"

    # Service
    service_name: str = "budget-gateway"
    log_level: str = "INFO"

    # Document store transactions
    transaction_max_retries: int = 5
    transaction_backoff_base: float = 0.05  # Exponential backoff base in seconds

    # Fiscal calendar (1 = January ... 12 = December)
    fiscal_year_start_month: int = 4


settings = Settings()
