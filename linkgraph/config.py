from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="LINKGRAPH_", case_sensitive=False)
    # Server configuration
    host: str = "0.0.0.0"
    port: int = 3001
    # "development" adds stack traces to 500 responses
    environment: str = "production"
    log_level: str = "INFO"

    # Rate limiting
    rate_limit_requests: int = 100
    rate_limit_window: int = 60  # seconds

    # Crawl limits
    links_per_page: int = 20
    total_node_budget: int = 50
    fetch_timeout_ms: int = 3000
    concurrent_fetches: int = 5
    default_max_depth: int = 2
    max_depth_limit: int = 5

    # Page fetching
    fetcher: Literal["browser", "http"] = "browser"
    user_agent: str = "LinkGraphBot/1.0"

    @property
    def fetch_timeout(self) -> float:
        return self.fetch_timeout_ms / 1000.0

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

settings = Settings()
