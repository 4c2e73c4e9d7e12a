from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./conversations.db"
    api_host: str = "0.0.0.0"
    port: int = 3050
    debug: bool = False

    # Chatwoot API
    chatwoot_api_key: str = ""
    chatwoot_account_id: str = ""
    chatwoot_team_id: str = ""
    chatwoot_base_url: str = "https://chat.dotmac.ng/api/v1"
    chatwoot_timeout_seconds: float = 10.0

    # Days to keep processed records before deletion
    db_cleanup_days: int = 7

    # Redis / Celery (unset = single-process scheduler)
    redis_url: str = ""
    celery_broker_url: str = ""
    celery_result_backend: str = ""

    # Environment
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str = "logs/chatwoot-automation.log"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def use_celery(self) -> bool:
        return bool(self.redis_url or self.celery_broker_url)

    @property
    def effective_celery_broker(self) -> str:
        return self.celery_broker_url or self.redis_url or "memory://"

    @property
    def effective_celery_backend(self) -> str:
        return self.celery_result_backend or self.redis_url or "cache+memory://"

    def missing_chatwoot_settings(self) -> list[str]:
        """Names of required Chatwoot variables that are not set."""
        required = {
            "CHATWOOT_API_KEY": self.chatwoot_api_key,
            "CHATWOOT_ACCOUNT_ID": self.chatwoot_account_id,
            "CHATWOOT_TEAM_ID": self.chatwoot_team_id,
        }
        return [name for name, value in required.items() if not value]

    def validate_production(self) -> None:
        """Raise if production is missing the Chatwoot credentials."""
        missing = self.missing_chatwoot_settings()
        if self.is_production and missing:
            raise ValueError(f"{', '.join(missing)} must be set in production")

    def describe(self) -> dict:
        """Configuration summary safe to log (API key masked)."""
        return {
            "CHATWOOT_BASE_URL": self.chatwoot_base_url,
            "CHATWOOT_ACCOUNT_ID": self.chatwoot_account_id or "NOT SET",
            "CHATWOOT_TEAM_ID": self.chatwoot_team_id or "NOT SET",
            "CHATWOOT_API_KEY": "********" if self.chatwoot_api_key else "NOT SET",
            "DB_CLEANUP_DAYS": self.db_cleanup_days,
            "SCHEDULER": "celery" if self.use_celery else "in-process",
        }

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
