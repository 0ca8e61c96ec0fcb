from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────
    database_hostname: str = "localhost"
    database_port: str = "5432"
    database_password: str = ""
    database_name: str = "umurava"
    database_username: str = "postgres"
    # Full SQLAlchemy URL; when set it wins over the individual parts above
    sqlalchemy_database_url: Optional[str] = None

    # ── JWT ───────────────────────────────────────────────────
    # Separate keys: the access-token secret cannot mint refresh tokens
    access_token_secret: str
    refresh_token_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 20
    refresh_token_expire_days: int = 20

    # ── Sessions ──────────────────────────────────────────────
    refresh_cookie_name: str = "refreshToken"
    cookie_secure: bool = True
    # Attempt silent renewal from the refresh cookie even when no bearer token was sent
    allow_refresh_without_access_token: bool = False

    # ── OTP / hashing ─────────────────────────────────────────
    otp_expire_minutes: int = 5
    bcrypt_rounds: int = 12

    # ── Gmail SMTP ────────────────────────────────────────────
    mail_username: str = ""
    mail_password: str = ""
    mail_from: str = "no-reply@umurava.africa"
    mail_from_name: str = "Umurava"
    mail_server: str = "smtp.gmail.com"
    mail_port: int = 587

    # ── Rate limiting ─────────────────────────────────────────
    rate_limit_enabled: bool = True
    rate_limit_default: str = "100/minute"
    rate_limit_auth: str = "10/hour"

    # ── App ───────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Split comma-separated origins into a list, stripping whitespace."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def database_url(self) -> str:
        if self.sqlalchemy_database_url:
            return self.sqlalchemy_database_url
        return (
            f"postgresql://{self.database_username}:{self.database_password}"
            f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
        )

    class Config:
        env_file = ".env"
        # Case-insensitive so ACCESS_TOKEN_SECRET and access_token_secret both work
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings loader — reads .env once and reuses.
    Use this everywhere instead of instantiating Settings() directly.
    """
    return Settings()


# Module-level singleton for convenience imports
settings = get_settings()
