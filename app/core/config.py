from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

from app.core.circuit_breaker import CircuitBreakerConfig
from app.core.scheduler import SchedulerConfig

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "Message Dispatcher"
    API_V1_STR: str = "/api/v1"
    CORS_ORIGINS: list[str] = ["*"]

    # Persistence
    DATABASE_URL: str = "sqlite:///./messages.db"

    # Outbound webhook
    WEBHOOK_URL: str = ""  # Required for delivery, optional for tests
    WEBHOOK_AUTH_KEY: str = ""
    WEBHOOK_AUTH_HEADER: str = "x-ins-auth-key"
    WEBHOOK_TIMEOUT_SECONDS: float = 30.0
    WEBHOOK_RETRY_COUNT: int = 3
    WEBHOOK_RETRY_WAIT_SECONDS: float = 1.0
    WEBHOOK_RETRY_MAX_WAIT_SECONDS: float = 5.0

    # Scheduler
    SCHEDULER_INTERVAL_SECONDS: float = 120.0  # 2 minutes
    SCHEDULER_BATCH_SIZE: int = 2
    SCHEDULER_MAX_RETRIES: int = 3
    SCHEDULER_RETRY_DELAY_SECONDS: float = 5.0
    SCHEDULER_AUTO_START: bool = False

    # Circuit breaker guarding the webhook
    CIRCUIT_BREAKER_ENABLED: bool = True
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_SUCCESS_THRESHOLD: int = 3
    CIRCUIT_BREAKER_HALF_OPEN_AFTER_SECONDS: float = 10.0
    CIRCUIT_BREAKER_MAX_CONCURRENT_CALLS: int = 1

    # Sent-message cache
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 86400  # 24 hours
    CACHE_MAX_SIZE: int = 10000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # JSON lines for log aggregation

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")

    def scheduler_config(self) -> SchedulerConfig:
        return SchedulerConfig(
            interval=self.SCHEDULER_INTERVAL_SECONDS,
            batch_size=self.SCHEDULER_BATCH_SIZE,
            max_retries=self.SCHEDULER_MAX_RETRIES,
            retry_delay=self.SCHEDULER_RETRY_DELAY_SECONDS,
            auto_start=self.SCHEDULER_AUTO_START,
        )

    def circuit_breaker_config(self) -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            failure_threshold=self.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
            success_threshold=self.CIRCUIT_BREAKER_SUCCESS_THRESHOLD,
            timeout=self.CIRCUIT_BREAKER_HALF_OPEN_AFTER_SECONDS,
            max_concurrent_calls=self.CIRCUIT_BREAKER_MAX_CONCURRENT_CALLS,
        )


settings = Settings()
