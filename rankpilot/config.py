from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "RankPilot"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    DATABASE_URL: str
    REDIS_URL: str

    LOG_LEVEL: str = "INFO"

    # Page fetching
    FETCH_TIMEOUT_SECONDS: float = 30.0
    FETCH_USER_AGENT: str = "Mozilla/5.0 (compatible; RankPilot/1.0; +https://rankpilot.com/bot)"

    # Competitor fan-out per audit
    MAX_COMPETITORS: int = 3

    # Token cost model
    TOKEN_COST_BASE: int = 1000
    TOKEN_COST_PER_COMPETITOR: int = 500
    TOKEN_COST_PER_ISSUE: int = 50

    # Usage alerts
    USAGE_ALERT_THRESHOLD_PERCENT: float = 90.0
    USAGE_ALERT_SWEEP_THRESHOLD_PERCENT: float = 80.0
    USAGE_ALERT_COOLDOWN_HOURS: int = 24

    # Admission control
    QUOTA_STRICT_ADMISSION: bool = False
    ADMISSION_LOCK_TIMEOUT_SECONDS: int = 10

    # Audit job retries
    AUDIT_TASK_MAX_RETRIES: int = 3
    AUDIT_TASK_RETRY_COUNTDOWN: int = 120

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def async_database_url(self) -> str:
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")


settings = Settings()
