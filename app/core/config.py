from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Studio Ops API"
    # Comma-separated origins for CORS (e.g. https://studio.example,https://admin.studio.example). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    DATABASE_URL: str = "sqlite:///./data/studio.db"

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    # Advisory file locks
    LOCK_DIR: str = "./data/locks"
    LOCK_TIMEOUT_MS: int = 30000
    LOCK_POLL_INTERVAL_MS: int = 100
    LOCK_CLEANUP_INTERVAL_SECONDS: int = 300

    # Payment proof storage
    UPLOAD_DIR: str = "./uploads/payment-proofs"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024


settings = Settings()
