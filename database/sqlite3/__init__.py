"""
SQLite3 비동기 데이터베이스 패키지

사용 예시:
    from database import transactional, get_connection
    from database.registry import DatabaseRegistry

    await DatabaseRegistry.init_from_config(config)

    @transactional
    async def fail_stale_jobs():
        ctx = get_connection()
        await ctx.execute("UPDATE jobs SET status = 'failed' WHERE status = 'pending'")
"""

from database.sqlite3.connection import (
    SQLiteDatabase,
    AsyncConnectionPool,
    TransactionContext,
    ManagedTransaction,
    PoolConfig,
    SqliteOptions,
    PooledConnection,
)

__all__ = [
    'SQLiteDatabase',
    'AsyncConnectionPool',
    'TransactionContext',
    'ManagedTransaction',
    'PoolConfig',
    'SqliteOptions',
    'PooledConnection',
]
