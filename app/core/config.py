from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # project root
ENV_PATH = BASE_DIR / ".env"

# Load .env into the environment first so plain os.environ readers agree
load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
    )

    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    JWT_ACCESS_MINUTES: int = 60
    JWT_REFRESH_DAYS: int = 14

    # Daily coupon cutoff and "today" are interpreted in this zone
    BUSINESS_TIMEZONE: str = "Asia/Seoul"
    COUPON_CODE_BYTES: int = 16

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    LOG_LEVEL: str = "INFO"


settings = Settings()
