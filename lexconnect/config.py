import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Falls back to a local SQLite file so the API boots without a Postgres server
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lexconnect.db")

# Connection pool: max 5; connections open lazily, so at least one once traffic arrives
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", "2"))  # seconds to acquire a connection
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "30"))  # max age in seconds of a pooled connection before it is replaced
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# JWT - tokens are issued by the auth service and only verified here
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    import warnings

    warnings.warn(
        "JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    JWT_SECRET = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ISSUER = os.getenv("JWT_ISSUER", "lexconnect")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "lexconnect-users")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", str(7 * 24 * 60)))

# Payments
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "MXN")

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
