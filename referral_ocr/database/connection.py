from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from referral_ocr.config.settings import Settings

_pool: ConnectionPool | None = None


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password} "
        f"application_name=referral-ocr-worker"
    )


def init_pool(settings: Settings) -> None:
    """Open the process-wide connection pool.

    Sized for the scan scheduler threads plus the poll loop and review calls.
    """
    global _pool  # noqa: PLW0603
    _pool = ConnectionPool(
        build_conninfo(settings),
        min_size=1,
        max_size=max(settings.db_pool_max_size, settings.max_concurrent_scans + 2),
        open=True,
    )


def close_pool() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a pooled connection. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn


@contextmanager
def transaction() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a pooled connection inside one transaction.

    Commits when the block exits cleanly, rolls back on exception.
    """
    with get_connection() as conn:
        with conn.transaction():
            yield conn


@contextmanager
def use_connection(
    conn: psycopg.Connection[Any] | None = None,
) -> Generator[psycopg.Connection[Any], None, None]:
    """Reuse the caller's connection, or open a fresh transaction when none is given."""
    if conn is not None:
        yield conn
        return
    with transaction() as own:
        yield own
