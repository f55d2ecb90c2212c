from pydantic import BaseModel
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent.parent


class DatabaseConfig(BaseModel):
    url: str = "sqlite+aiosqlite:///analytics.db"
    echo: bool = False
    echo_pool: bool = False
    max_overflow: int = 10
    pool_size: int = 20


class AnalyticsConfig(BaseModel):
    default_domain: str | None = None # domain stored on events logged without one


class LogConfig(BaseModel):
    level: str = "INFO"
    file: Path | None = BASE_DIR / "logs" / "event_analytics.log"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter='__',
        env_prefix="EVENT_ANALYTICS__",
        extra="ignore",
    )
    db: DatabaseConfig = DatabaseConfig()
    analytics: AnalyticsConfig = AnalyticsConfig()
    log: LogConfig = LogConfig()

settings = Settings()
