import logging
import os
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)


def get_env_variable(var_name: str) -> str:
    value = os.environ.get(var_name)
    if not value:
        logger.error("Required environment variable missing: %s", var_name)
        raise ValueError(f"Critical Error: Required environment variable {var_name} is not set.")
    return value


def get_database_url() -> str:
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        return database_url

    db_user = get_env_variable("POSTGRES_USER")
    encoded_password = quote_plus(get_env_variable("POSTGRES_PASSWORD"))
    db_host = get_env_variable("POSTGRES_HOST")
    db_port = os.environ.get("POSTGRES_PORT", "5432")
    db_name = get_env_variable("POSTGRES_DB")

    return f"postgresql+psycopg2://{db_user}:{encoded_password}@{db_host}:{db_port}/{db_name}"


def get_connect_args() -> dict[str, object]:
    """psycopg2 connect arguments; sessions show up as ``pallet-ledger`` in pg_stat_activity."""
    return {
        "sslmode": os.environ.get("DB_SSLMODE", "prefer"),
        "connect_timeout": int(os.environ.get("DB_CONNECT_TIMEOUT", "10")),
        "application_name": os.environ.get("DB_APPLICATION_NAME", "pallet-ledger"),
    }
