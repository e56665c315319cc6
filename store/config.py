"""
Store configuration.

Settings come from the environment; a local .env file is loaded first.
"""

import os

from dotenv import load_dotenv

load_dotenv()

SERVICE_NAME = os.getenv("SERVICE_NAME", "store")

# Any SQLAlchemy async URL (e.g. sqlite+aiosqlite:///store.db); wins over Cloud SQL
DATABASE_URL = os.getenv("DATABASE_URL")

# Cloud SQL (IAM authentication)
INSTANCE_CONNECTION_NAME = os.getenv("INSTANCE_CONNECTION_NAME")
DB_NAME = os.getenv("DB_NAME", "store")
DB_USER = os.getenv("DB_USER")

# Pool settings, passed through to SQLAlchemy
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "1800"))

SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
