"""Configuration settings for provider discovery."""

from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Paths
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = base_dir / "data"
    db_path: Path = data_dir / "provider_discovery.db"

    # Registry API
    npi_api_url: str = "https://npiregistry.cms.hhs.gov/api/"
    npi_api_version: str = "2.1"
    registry_page_size: int = 200  # max allowed by the registry

    # HTTP Client Settings
    user_agent: str = "ProviderDiscoveryBot/1.0 (+contact@example.com)"
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    rate_limit_delay: float = 0.15  # seconds between any two registry requests
    request_retries: int = 2
    retry_backoff: float = 1.0

    # Scheduling
    max_concurrent_plans: int = 4
    plan_deadline_seconds: float = 300.0

    # Web search
    web_results_per_query: int = 20

    # Confidence tiers
    score_high_threshold: float = 70.0
    score_medium_threshold: float = 40.0

    # Database URL
    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

# Ensure data directory exists
settings.data_dir.mkdir(parents=True, exist_ok=True)
