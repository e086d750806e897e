from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "myWebLog"

    # SQLite by default; any SQLAlchemy URL works
    DATABASE_URL: str = "sqlite:///./weblog.db"

    # Written to the <generator> element of every feed
    GENERATOR: str = "myWebLog"

    # Error tracking (disabled when empty)
    SENTRY_DSN: str = ""
    ENVIRONMENT: str = "development"

    # Storage calls run in AnyIO worker threads
    THREADPOOL_MAX_WORKERS: int = 40

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")


settings = Settings()
