from datetime import time

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Database – SQLite for local development
    DATABASE_URL: str = "sqlite+aiosqlite:///./shiftclock.db"
    AUTO_CREATE_TABLES: bool = True
    STORE_TIMEOUT_SECONDS: float = 5.0
    MAX_WRITE_RETRIES: int = 3

    # Redis / Celery (optional – without Celery the sweep runs inside the API process)
    REDIS_URL: str = "redis://localhost:6379/0"
    USE_CELERY: bool = False

    # Reminder sweep
    SWEEP_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: float = 60.0
    REMINDER_INTERVAL_MINUTES: int = 30
    NOTIFIER_TIMEOUT_SECONDS: float = 10.0

    # Shift policy
    FULL_DAY_HOURS: float = 9.5
    HALF_DAY_HOURS: float = 4.75
    LATE_AFTER: time = time(10, 0)
    PARTIAL_DAY_MIN_HOURS: float = 4.0
    LOCAL_TIMEZONE: str = "UTC"

    # Security
    SECRET_KEY: str = "dev_secret_key_change_in_production_min_32_chars!!"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30

    # SendGrid
    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = "shiftclock@yourdomain.com"

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
