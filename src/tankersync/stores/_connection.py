"""
Connection handling helper for SQLAlchemy-backed stores.

Lets stores accept either an ``AsyncEngine`` (a connection is opened per
operation) or an ``AsyncConnection`` owned by the caller.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine


@asynccontextmanager
async def execute_with_connection(
    conn: AsyncConnection | AsyncEngine,
    transactional: bool = True,
) -> AsyncIterator[AsyncConnection]:
    """
    Yield a connection ready for ``execute()``.

    Args:
        conn: Engine or connection
        transactional: With an engine, wrap the block in ``begin()`` when
            True and use a bare ``connect()`` when False. Ignored for an
            existing connection, whose transactions the caller manages.
    """
    if isinstance(conn, AsyncEngine):
        if transactional:
            async with conn.begin() as connection:
                yield connection
        else:
            async with conn.connect() as connection:
                yield connection
    else:
        yield conn
