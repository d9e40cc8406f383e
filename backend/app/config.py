# app/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Eventara API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for the single-page frontend
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Sessions (signed cookie / bearer token pointing at a server-side row)
    session_secret: str = os.getenv("SESSION_SECRET", "dev-secret")
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "session")
    session_cookie_secure: bool = _flag("SESSION_COOKIE_SECURE")
    session_ttl_minutes: int = int(os.getenv("SESSION_TTL_MINUTES", "120"))  # sliding, non-remembered
    session_remember_days: int = int(os.getenv("SESSION_REMEMBER_DAYS", "30"))  # hard upper bound

    # Verification codes (reactivation / password reset)
    code_ttl_minutes: int = int(os.getenv("CODE_TTL_MINUTES", "30"))
    code_length: int = int(os.getenv("CODE_LENGTH", "6"))
    code_max_attempts: int = int(os.getenv("CODE_MAX_ATTEMPTS", "5"))
    code_daily_issue_limit: int = int(os.getenv("CODE_DAILY_ISSUE_LIMIT", "5"))

    # Account lifecycle
    dormancy_days: int = int(os.getenv("DORMANCY_DAYS", "90"))  # ~3 months without login
    password_min_length: int = int(os.getenv("PASSWORD_MIN_LENGTH", "8"))

    # Outbound mail
    # "log" only writes the message to the log (development), "http" posts to MAIL_API_URL
    mail_provider: str = os.getenv("MAIL_PROVIDER", "log")
    mail_api_url: str = os.getenv("MAIL_API_URL", "https://api.resend.com/emails")
    mail_api_key: str | None = os.getenv("MAIL_API_KEY")
    mail_from: str = os.getenv("MAIL_FROM", "Eventara <no-reply@eventara.app>")

    # Daily inactivity sweep (runs in-process at INACTIVITY_SWEEP_HOUR UTC)
    enable_inactivity_sweep: bool = _flag("ENABLE_INACTIVITY_SWEEP")
    inactivity_sweep_hour: int = int(os.getenv("INACTIVITY_SWEEP_HOUR", "2"))
    sweep_lock_ttl_minutes: int = int(os.getenv("SWEEP_LOCK_TTL_MINUTES", "60"))


settings = Settings()  # Instantiate configuration
