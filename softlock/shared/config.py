from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Optional


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_ENV: str = "dev"
    API_PREFIX: str = "/api"
    DATABASE_URL: str = "sqlite:///./_data/dev.db"
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"
    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"
    ACCESS_TTL_MIN: int = 60
    LOG_LEVEL: str = "INFO"

    # model locking
    LOCK_DURATION: Optional[str] = None  # falls back to "5 minutes"
    LOCK_USE_AUTHENTICATED_USER: bool = True
    LOCK_REQUEST_SHORTEN_DURATION: Optional[str] = None
    LOCK_SUBJECT_DURATIONS: Dict[str, str] = {}  # e.g. {"post": "10 minutes"}
    LOCK_BROADCAST_ENABLED: bool = True
    LOCK_BROADCAST_AS: Dict[str, str] = {}  # kind -> broadcast name
    LOCK_CHANNELS_LOCKED: str = ""
    LOCK_CHANNELS_UNLOCKED: str = ""
    LOCK_CHANNELS_REQUEST: str = ""
    LOCK_HOLDER_MODEL: str = "users"

    @property
    def cors_origins_list(self) -> List[str]:
        return _split_csv(self.CORS_ORIGINS)

    @property
    def lock_channels(self) -> Dict[str, List[str]]:
        return {
            "locked": _split_csv(self.LOCK_CHANNELS_LOCKED),
            "unlocked": _split_csv(self.LOCK_CHANNELS_UNLOCKED),
            "request": _split_csv(self.LOCK_CHANNELS_REQUEST),
        }


settings = Settings()
