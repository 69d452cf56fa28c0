# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_kasir.db"

    # Midtrans Snap credentials; the server key never leaves the backend
    MIDTRANS_SERVER_KEY: str = ""
    MIDTRANS_IS_PRODUCTION: bool = False
    MIDTRANS_API_URL: str = ""

    FRONTEND_URL: str = "http://localhost:3000"

    LOW_STOCK_THRESHOLD: int = 10
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra = "ignore"

    @property
    def midtrans_base_url(self) -> str:
        if self.MIDTRANS_API_URL:
            return self.MIDTRANS_API_URL
        if self.MIDTRANS_IS_PRODUCTION:
            return "https://app.midtrans.com"
        return "https://app.sandbox.midtrans.com"

settings = Settings()
