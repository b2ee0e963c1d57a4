from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from database.db_config import get_connect_args, get_database_url


def create_database_engine(
    database_url: str | None = None,
    *,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
) -> Engine:
    """
    Build an engine for ``database_url`` (or the URL from the environment).

    The caller owns the returned engine and is expected to ``dispose()`` it.
    SQLite URLs get a thread-shareable connection so in-memory databases
    survive across sessions.
    """
    url = make_url(database_url or get_database_url())

    if url.get_backend_name() == "sqlite":
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **options)

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
        connect_args=get_connect_args(),
    )
