"""Direct PostgreSQL access over the stack's published port.

Two entry points:

- ``check_database_ready()`` -- a synchronous readiness probe using psycopg
  (v3), run by the ``health`` command.
- ``AsyncPostgresAdapter`` -- a small async query adapter on SQLAlchemy's
  async engine with the ``asyncpg`` driver, used for the grouped
  statistics in the ``stats`` command.

Usage:
    from registry_ops.adapters.postgres import AsyncPostgresAdapter

    adapter = AsyncPostgresAdapter(config.database_url)
    rows = await adapter.count_by_status("servers", "status")
    await adapter.close()
"""

import logging
import re
from typing import Any

import psycopg
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from registry_ops.config.models import StatusCount

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _with_connect_timeout(url: str, seconds: int) -> str:
    if "connect_timeout" in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}connect_timeout={seconds}"


def check_database_ready(database_url: str, timeout: int = CONNECT_TIMEOUT) -> tuple[bool, str]:
    """Probe whether PostgreSQL accepts connections and answers a query.

    Args:
        database_url: ``postgresql://`` connection URL.
        timeout: Connect timeout in seconds.

    Returns:
        Tuple of (ready, detail message). Never raises for connection
        failures -- they are reported as ``(False, reason)``.
    """
    try:
        with psycopg.connect(_with_connect_timeout(database_url, timeout)) as conn:
            conn.execute("SELECT 1")
    except psycopg.Error as e:
        logger.debug("Database readiness probe failed: %s", e)
        return False, str(e).strip() or e.__class__.__name__
    return True, "accepting connections"


def create_async_engine_pooled(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async SQLAlchemy engine for short-lived CLI use.

    Default pool settings:

    - ``pool_size=1``: one query per command invocation.
    - ``max_overflow=0``: no burst connections.
    - ``pool_pre_ping=True``: validate connections before checkout.
    - ``connect_args={"timeout": CONNECT_TIMEOUT}``: bound the asyncpg
      connection attempt so an unreachable server fails fast.

    Args:
        database_url: PostgreSQL connection URL with ``postgresql+asyncpg://``
            scheme.
        **kwargs: Additional keyword arguments forwarded to
            ``create_async_engine``.
    """
    defaults: dict[str, Any] = {
        "pool_size": 1,
        "max_overflow": 0,
        "pool_pre_ping": True,
        "connect_args": {"timeout": CONNECT_TIMEOUT},
        "echo": False,
    }
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}

    return create_async_engine(database_url, **merged)


def normalize_async_url(database_url: str) -> str:
    """Rewrite ``postgres://`` / ``postgresql://`` to ``postgresql+asyncpg://``."""
    url = database_url
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = "postgresql+asyncpg://" + url[len("postgresql://"):]
    return url


class AsyncPostgresAdapter:
    """Async read-only query adapter.

    Args:
        database_url: PostgreSQL connection URL.  Accepts ``postgres://``,
            ``postgresql://``, or ``postgresql+asyncpg://`` schemes.
        **engine_kwargs: Forwarded to ``create_async_engine_pooled``.
    """

    def __init__(self, database_url: str, **engine_kwargs: Any) -> None:
        self._engine: AsyncEngine = create_async_engine_pooled(
            normalize_async_url(database_url), **engine_kwargs
        )

    async def fetch(self, sql: str, params: dict | None = None) -> list[dict]:
        """Run a query and return rows as dicts."""
        async with self._engine.connect() as conn:
            result = await conn.execute(text(sql), params or {})
            col_names = list(result.keys())
            return [dict(zip(col_names, row)) for row in result.fetchall()]

    async def count_by_status(
        self, table: str = "servers", column: str = "status"
    ) -> list[StatusCount]:
        """Group-count ``table`` by ``column``, largest group first.

        Raises:
            ValueError: If ``table`` or ``column`` is not a plain identifier.
        """
        for name in (table, column):
            if not _IDENTIFIER.match(name):
                raise ValueError(f"Invalid SQL identifier: {name!r}")

        rows = await self.fetch(
            f"SELECT {column} AS status, COUNT(*) AS count "
            f"FROM {table} GROUP BY {column} ORDER BY count DESC"
        )
        return [
            StatusCount(
                status="(null)" if row["status"] is None else str(row["status"]),
                count=int(row["count"]),
            )
            for row in rows
        ]

    async def close(self) -> None:
        """Dispose of the connection pool."""
        if self._engine:
            await self._engine.dispose()
