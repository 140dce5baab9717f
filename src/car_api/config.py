import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable '{name}'. "
            "Set it in the environment or the project .env file."
        )
    return value


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _optional_int_env(name: str) -> Optional[int]:
    value = os.getenv(name)
    if not value:
        return None
    return int(value)


def _build_dsn() -> str:
    """
    Build DSN from the database env vars.

    Uses:
      - DATABASE_URL (optional full DSN; if provided, it wins)
      - DB_USER, DB_PASSWORD, DB_DATABASE, DB_HOST, DB_PORT
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    user = _required_env("DB_USER")
    password = _required_env("DB_PASSWORD")
    database = _required_env("DB_DATABASE")
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: Optional[int] = None
    db_pool_min: int = 1
    db_pool_max: int = 10
    db_time_zone: str = "-08:00"
    db_statement_timeout_ms: int = 30000
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # PUBLIC_INTERFACE
    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        allow_origins = ["*"]
        if origins:
            allow_origins = [o.strip() for o in origins.split(",") if o.strip()]

        return cls(
            database_url=_build_dsn(),
            # Required for security; do not default.
            jwt_secret=_required_env("JWT_KEY"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            jwt_expires_minutes=_optional_int_env("JWT_EXPIRES_MINUTES"),
            db_pool_min=_int_env("DB_POOL_MIN", 1),
            db_pool_max=_int_env("DB_POOL_MAX", 10),
            db_time_zone=os.getenv("DB_TIME_ZONE", "-08:00"),
            db_statement_timeout_ms=_int_env("DB_STATEMENT_TIMEOUT_MS", 30000),
            cors_allow_origins=allow_origins,
            host=os.getenv("HOST", "0.0.0.0"),
            port=_int_env("PORT", 8000),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


# PUBLIC_INTERFACE
def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
