# geoattend/core/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SECRET_KEY: str = "your-super-secret-jwt-key-change-in-prod"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    DATABASE_URL: str = "sqlite:///./geoattend.db"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://127.0.0.1",
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Sessions older than this are closed on access. None or 0 keeps them open
    # until the teacher closes them.
    SESSION_TIMEOUT_SECONDS: Optional[int] = 120
    QR_TOKEN_TTL_SECONDS: int = 300
    DEFAULT_ALLOWED_RADIUS_METERS: float = 100.0

    SIMULTANEOUS_USAGE_WINDOW_SECONDS: int = 300
    RECENT_DEVICE_WINDOW_SECONDS: int = 24 * 60 * 60
    REQUIRE_DEVICE_FOR_ATTENDANCE: bool = False

    class Config:
        env_file = ".env"


settings = Settings()
