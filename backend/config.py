import os
from pathlib import Path
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load .env file from project root
ENV_PATH = Path(__file__).parent.parent / ".env"
load_dotenv(ENV_PATH)


def get_bool_env(key: str, default: bool = False) -> bool:
    """Parse a boolean environment variable ("true", "1", "yes" are truthy)."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


# Server settings
PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")
DEBUG = get_bool_env("DEBUG")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()

# Database - parse DATABASE_URL for PostgreSQL
DATABASE_URL = os.getenv("DATABASE_URL", "")

def get_db_config():
    """Parse DATABASE_URL into connection parameters."""
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL environment variable is required")

    parsed = urlparse(DATABASE_URL)
    return {
        "host": parsed.hostname,
        "port": parsed.port or 5432,
        "database": parsed.path[1:],  # Remove leading /
        "user": parsed.username,
        "password": parsed.password,
    }

# CORS
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# Email (SendGrid)
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL", "noreply@tennislineup.app")
ENABLE_EMAIL = get_bool_env("ENABLE_EMAIL", default=True)
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000").rstrip("/")

# Paths
ROOT_DIR = Path(__file__).parent.parent
DATA_DIR = ROOT_DIR / "data"
