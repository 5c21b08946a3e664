from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "ThreatFeed API"
    env: str = "dev"
    log_level: str = "INFO"

    llm_enabled: bool = True
    llm_api_key: str | None = None
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    llm_timeout_seconds: int = 40
    llm_max_retries: int = 2

    ingest_http_timeout_seconds: int = 20
    fetch_user_agent: str = "Mozilla/5.0"
    article_char_limit: int = 3000
    listing_limit: int = 40
    enrichment_concurrency: int = 4

    allowed_fetch_hosts: str = ""
    block_private_hosts: bool = True
    observability_enabled: bool = True

    @property
    def allowed_fetch_host_list(self) -> list[str]:
        return [item.strip().lower() for item in self.allowed_fetch_hosts.split(",") if item.strip()]

    @model_validator(mode="after")
    def validate_feature_flags(self) -> "Settings":
        if self.llm_enabled and not self.llm_api_key and self.env not in {"test", "dev"}:
            raise ValueError("llm_api_key is required when llm_enabled=true")
        if self.enrichment_concurrency < 1:
            raise ValueError("enrichment_concurrency must be at least 1")
        if self.llm_max_retries < 1:
            raise ValueError("llm_max_retries must be at least 1")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
