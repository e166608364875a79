import os

# Runtime environment
ENV = os.getenv("ENV", "development").lower()

# Database
_DEFAULT_DATABASE_URL = "sqlite:///./achievements.db"
DATABASE_URL = os.getenv("DATABASE_URL", _DEFAULT_DATABASE_URL)  # SQLite default for development only

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Achievement checks
ACHIEVEMENT_CHECK_RATE_LIMIT = os.getenv("ACHIEVEMENT_CHECK_RATE_LIMIT", "30/minute")
ACHIEVEMENT_ACTION_URL = os.getenv("ACHIEVEMENT_ACTION_URL", "/estudiante?tab=gamificacion")


def validate_config() -> None:
    """
    Validate required configuration.

    This is intentionally strict only in production so that local development
    and tests can run with minimal environment setup.
    """
    if ENV != "production":
        return

    errors: list[str] = []

    if not DATABASE_URL or DATABASE_URL == _DEFAULT_DATABASE_URL:
        errors.append("DATABASE_URL must point at the production database")

    if DATABASE_URL and DATABASE_URL.startswith("sqlite"):
        errors.append("DATABASE_URL must not use SQLite in production")

    if LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        errors.append("LOG_LEVEL must be a standard logging level name")

    if not ACHIEVEMENT_ACTION_URL.startswith(("/", "http://", "https://")):
        errors.append("ACHIEVEMENT_ACTION_URL must be a path or an http(s) URL")

    if errors:
        raise RuntimeError("Invalid configuration:\n- " + "\n- ".join(errors))
