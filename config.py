import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv(override=False)

DEFAULT_SESSION_SECRET = "altakhim-dev-secret"


class Settings(BaseModel):
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "real_estate"
    session_secret: str = DEFAULT_SESSION_SECRET
    session_cookie: str = "session"
    session_max_age: int = 86400
    environment: str = "development"
    db_timeout_ms: int = 5000
    bcrypt_rounds: int = 12
    admin_username: str = "aqarpanel"
    admin_password: str = "change-me-now"
    admin_email: str = "admin@altakhim.com"
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def get_settings() -> Settings:
    """Read settings from the environment (and `.env`, if present)."""
    origins = os.getenv("CORS_ORIGINS", "*")
    settings = Settings(
        database_url=os.getenv("DATABASE_URL", "mongodb://localhost:27017"),
        database_name=os.getenv("DATABASE_NAME", "real_estate"),
        session_secret=os.getenv("SESSION_SECRET", DEFAULT_SESSION_SECRET),
        session_max_age=int(os.getenv("SESSION_MAX_AGE", 86400)),
        environment=os.getenv("ENVIRONMENT", "development").lower(),
        db_timeout_ms=int(os.getenv("DB_TIMEOUT_MS", 5000)),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", 12)),
        admin_username=os.getenv("ADMIN_USERNAME", "aqarpanel"),
        admin_password=os.getenv("ADMIN_PASSWORD", "change-me-now"),
        admin_email=os.getenv("ADMIN_EMAIL", "admin@altakhim.com"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(os.getenv("PORT", 8000)),
    )
    if settings.is_production and settings.session_secret == DEFAULT_SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET must be set in production")
    return settings
