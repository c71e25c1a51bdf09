"""
SQLite3 비동기 커넥션풀 모듈

aiosqlite 연결 몇 개를 미리 열어 두고 트랜잭션 단위로 빌려줍니다.
SQLite는 쓰기가 한 번에 하나뿐이므로 WAL 모드 + BEGIN IMMEDIATE로
쓰기 트랜잭션을 직렬화하고, 읽기는 BEGIN DEFERRED로 동시에 진행합니다.

스키마는 sql/schema.sql의 schema_vN 스크립트를 PRAGMA user_version 기준으로
아직 적용되지 않은 것만 순서대로 실행합니다.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import aiosql

from database.base import BaseDatabase
from database.context import set_connection, clear_connection
from database.exception import (
    ConnectionPoolExhaustedError,
    ReadOnlyTransactionError,
    TransactionError,
)

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / 'sql' / 'schema.sql'

# 버전 순서대로 적용할 스크립트 이름 (인덱스 + 1 = user_version)
SCHEMA_VERSIONS = (
    'schema_v1',
)

_WRITE_PREFIXES = ('INSERT', 'UPDATE', 'DELETE', 'REPLACE', 'CREATE', 'DROP', 'ALTER')


@dataclass
class PoolConfig:
    """커넥션풀 설정"""
    pool_size: int = 5
    pool_timeout: float = 30.0
    max_idle_time: float = 300.0


@dataclass
class SqliteOptions:
    """연결마다 적용할 PRAGMA"""
    busy_timeout: int = 5000
    journal_mode: str = 'WAL'
    synchronous: str = 'NORMAL'
    cache_size: int = -2000
    foreign_keys: bool = True

    def pragmas(self) -> list[str]:
        return [
            f"PRAGMA busy_timeout={self.busy_timeout}",
            f"PRAGMA journal_mode={self.journal_mode}",
            f"PRAGMA synchronous={self.synchronous}",
            f"PRAGMA cache_size={self.cache_size}",
            f"PRAGMA foreign_keys={'ON' if self.foreign_keys else 'OFF'}",
        ]


@dataclass
class PooledConnection:
    """풀에서 관리되는 연결"""
    connection: aiosqlite.Connection
    last_used_at: datetime = field(default_factory=datetime.now)
    in_use: bool = False

    def idle_seconds(self) -> float:
        return (datetime.now() - self.last_used_at).total_seconds()


class TransactionContext:
    """
    열린 트랜잭션 하나

    Store 쿼리는 aiosql에 connection을 넘겨 실행하고,
    직접 SQL이 필요하면 execute/fetch_* 를 사용합니다.
    """

    def __init__(self, connection: aiosqlite.Connection, readonly: bool = False):
        self._connection = connection
        self._readonly = readonly

    @property
    def connection(self) -> aiosqlite.Connection:
        return self._connection

    @property
    def readonly(self) -> bool:
        return self._readonly

    async def execute(self, sql: str, parameters: Any = None) -> aiosqlite.Cursor:
        """SQL 실행 (읽기 전용 트랜잭션에서 쓰기는 차단)"""
        if self._readonly and sql.lstrip().upper().startswith(_WRITE_PREFIXES):
            raise ReadOnlyTransactionError("Cannot execute write query in readonly transaction")

        _log_query(sql, parameters)
        return await self._connection.execute(sql, parameters or ())

    async def fetch_one(self, sql: str, parameters: Any = None) -> aiosqlite.Row | None:
        cursor = await self.execute(sql, parameters)
        row = await cursor.fetchone()
        logger.debug(f"[SQL Result] {1 if row else 0} row(s)")
        return row

    async def fetch_all(self, sql: str, parameters: Any = None) -> list[aiosqlite.Row]:
        cursor = await self.execute(sql, parameters)
        rows = await cursor.fetchall()
        logger.debug(f"[SQL Result] {len(rows)} row(s)")
        return rows

    async def fetch_val(self, sql: str, parameters: Any = None) -> Any:
        """첫 행의 첫 컬럼 값"""
        row = await self.fetch_one(sql, parameters)
        return row[0] if row else None


def _log_query(sql: str, parameters: Any = None) -> None:
    sql_oneline = ' '.join(sql.split())
    if parameters:
        logger.debug(f"[SQL] {sql_oneline} | params: {parameters}")
    else:
        logger.debug(f"[SQL] {sql_oneline}")


class AsyncConnectionPool:
    """
    고정 크기 aiosqlite 커넥션풀

    max_idle_time보다 오래 쉰 연결은 빌려줄 때 새로 엽니다.
    """

    def __init__(
        self,
        db_path: str,
        pool_config: PoolConfig | None = None,
        sqlite_options: SqliteOptions | None = None,
    ):
        self._db_path = Path(db_path)
        self._pool_config = pool_config or PoolConfig()
        self._sqlite_options = sqlite_options or SqliteOptions()

        self._connections: list[PooledConnection] = []
        self._idle: asyncio.Queue[PooledConnection] = asyncio.Queue()
        self._closed = False

    async def initialize(self) -> None:
        """연결 생성"""
        if self._connections:
            logger.warning("Connection pool already initialized")
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        for _ in range(self._pool_config.pool_size):
            pooled_conn = PooledConnection(connection=await self._connect())
            self._connections.append(pooled_conn)
            self._idle.put_nowait(pooled_conn)

        logger.info(
            f"Connection pool initialized: {self._db_path} "
            f"(size={self._pool_config.pool_size}, timeout={self._pool_config.pool_timeout}s)"
        )

    async def _connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(
            self._db_path,
            timeout=self._sqlite_options.busy_timeout / 1000.0,
            isolation_level=None,
        )
        conn.row_factory = aiosqlite.Row
        for pragma in self._sqlite_options.pragmas():
            await conn.execute(pragma)
        return conn

    async def acquire(self, timeout: float | None = None) -> PooledConnection:
        """
        연결 빌리기

        Raises:
            ConnectionPoolExhaustedError: timeout 안에 반납된 연결이 없음
        """
        if not self._connections or self._closed:
            raise RuntimeError(f"Connection pool is not open: {self._db_path}")

        timeout = timeout or self._pool_config.pool_timeout
        try:
            pooled_conn = await asyncio.wait_for(self._idle.get(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ConnectionPoolExhaustedError(
                f"Connection pool exhausted. Timeout after {timeout}s"
            )

        if pooled_conn.idle_seconds() > self._pool_config.max_idle_time:
            await self._refresh(pooled_conn)

        pooled_conn.in_use = True
        pooled_conn.last_used_at = datetime.now()
        return pooled_conn

    async def _refresh(self, pooled_conn: PooledConnection) -> None:
        try:
            await pooled_conn.connection.close()
            pooled_conn.connection = await self._connect()
            logger.debug("Refreshed idle connection")
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to refresh connection: {e}")

    async def release(self, pooled_conn: PooledConnection) -> None:
        """연결 반납"""
        pooled_conn.in_use = False
        pooled_conn.last_used_at = datetime.now()
        self._idle.put_nowait(pooled_conn)
        logger.debug(f"Connection released. Available: {self.available}/{self.size}")

    async def close(self) -> None:
        """모든 연결 닫기"""
        self._closed = True
        for pooled_conn in self._connections:
            try:
                await pooled_conn.connection.close()
            except sqlite3.Error as e:
                logger.error(f"Error closing connection: {e}")
        self._connections.clear()
        logger.info("Connection pool closed")

    @property
    def size(self) -> int:
        return len(self._connections)

    @property
    def available(self) -> int:
        return sum(1 for pc in self._connections if not pc.in_use)


class ManagedTransaction:
    """
    트랜잭션 컨텍스트 매니저

    정상 종료 시 commit, 예외 시 rollback 후 연결을 반납합니다.
    열린 동안은 database.context에 등록되어 get_connection()으로 조회됩니다.
    """

    def __init__(self, db: 'SQLiteDatabase', readonly: bool = False):
        self._db = db
        self._readonly = readonly
        self._pooled_conn: PooledConnection | None = None

    async def __aenter__(self) -> TransactionContext:
        self._pooled_conn = await self._db.pool.acquire()
        conn = self._pooled_conn.connection

        try:
            await conn.execute("BEGIN DEFERRED" if self._readonly else "BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            await self._db.pool.release(self._pooled_conn)
            raise TransactionError(f"Failed to begin transaction on '{self._db.name}': {e}") from e

        ctx = TransactionContext(conn, self._readonly)
        set_connection(self._db.name, ctx)
        return ctx

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        conn = self._pooled_conn.connection
        try:
            if exc_type is not None:
                await conn.rollback()
                logger.debug(f"Transaction rolled back on '{self._db.name}'")
                return

            try:
                await conn.commit()
            except sqlite3.Error as e:
                await conn.rollback()
                raise TransactionError(f"Failed to commit transaction on '{self._db.name}': {e}") from e
        finally:
            clear_connection(self._db.name)
            await self._db.pool.release(self._pooled_conn)


class SQLiteDatabase(BaseDatabase):
    """
    SQLite 데이터베이스 구현

    사용 예시:
        db = await SQLiteDatabase.create('default', {'path': '/data/state.db'})

        async with db.transaction() as ctx:
            await ctx.execute("UPDATE jobs SET status = ? WHERE id = ?", ('failed', 1))
    """

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name)
        self._config = config
        self._pool: AsyncConnectionPool | None = None

    @classmethod
    async def create(cls, name: str, config: dict[str, Any]) -> 'SQLiteDatabase':
        """인스턴스 생성, 풀 초기화, 스키마 적용"""
        instance = cls(name, config)
        await instance._initialize()
        return instance

    async def _initialize(self) -> None:
        pool_cfg = self._config.get('pool', {})
        opts = self._config.get('options', {})

        self._pool = AsyncConnectionPool(
            db_path=self._config.get('path', f'./data/{self.name}.db'),
            pool_config=PoolConfig(
                pool_size=pool_cfg.get('pool_size', 5),
                pool_timeout=pool_cfg.get('pool_timeout', 30.0),
                max_idle_time=pool_cfg.get('max_idle_time', 300.0),
            ),
            sqlite_options=SqliteOptions(
                busy_timeout=opts.get('busy_timeout', 5000),
                journal_mode=opts.get('journal_mode', 'WAL'),
                synchronous=opts.get('synchronous', 'NORMAL'),
                cache_size=opts.get('cache_size', -2000),
                foreign_keys=opts.get('foreign_keys', True),
            ),
        )
        await self._pool.initialize()
        await self._migrate()

        logger.info(f"SQLiteDatabase '{self.name}' initialized successfully")

    async def _migrate(self) -> None:
        """적용되지 않은 schema_vN 스크립트 실행"""
        queries = aiosql.from_path(str(SCHEMA_PATH), "aiosqlite")
        pooled_conn = await self._pool.acquire()
        conn = pooled_conn.connection
        try:
            async with conn.execute("PRAGMA user_version") as cursor:
                current = (await cursor.fetchone())[0]

            for version, script in enumerate(SCHEMA_VERSIONS, start=1):
                if version <= current:
                    continue
                await getattr(queries, script)(conn)
                await conn.execute(f"PRAGMA user_version={version}")
                logger.info(f"Applied schema version {version} to '{self.name}'")
        except sqlite3.Error as e:
            raise TransactionError(f"Failed to migrate schema on '{self.name}': {e}") from e
        finally:
            await self._pool.release(pooled_conn)

    def transaction(self, readonly: bool = False) -> ManagedTransaction:
        return ManagedTransaction(self, readonly)

    @property
    def pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            raise RuntimeError(f"Database '{self.name}' not initialized")
        return self._pool

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
        logger.info(f"SQLiteDatabase '{self.name}' closed")
