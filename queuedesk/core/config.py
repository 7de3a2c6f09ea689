from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "QueueDesk"
    API_V1_STR: str = "/api/v1"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_DB: str = "queuedesk"
    DATABASE_URL: Optional[str] = None
    REDIS_URL: str = "redis://localhost:6379/0"
    LOG_LEVEL: str = "INFO"

    # Auto-assignment timer
    SCHEDULER_ENABLED: bool = True
    AUTO_ASSIGN_INTERVAL_SECONDS: int = 3
    AUTO_ASSIGN_JITTER_SECONDS: int = 1
    AUTO_ASSIGN_LOCK_ENABLED: bool = True
    AUTO_ASSIGN_LOCK_TIMEOUT_SECONDS: int = 10

    # Advertised to polling screens
    DISPLAY_REFRESH_SECONDS: int = 5

    class Config:
        case_sensitive = True
        env_file = ".env"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.DATABASE_URL:
            self.DATABASE_URL = f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"

settings = Settings()
