"""
데이터베이스 패키지

사용 예시:
    from database import transactional, transactional_readonly, get_connection

    @transactional
    async def create_job(schedule_id):
        ctx = get_connection()
        await queries.create_job(ctx.connection, schedule_id=schedule_id)

    @transactional(default_db, secondary_db)
    async def sync_both():
        ...
"""

import functools
from contextlib import AsyncExitStack
from typing import Any, Callable

import aiosqlite

from database.base import BaseDatabase
from database.context import get_connection, has_connection
from database.exception import (
    DatabaseError,
    ConnectionPoolExhaustedError,
    TransactionError,
    QueryExecutionError,
    ReadOnlyTransactionError,
)
from database.registry import DatabaseRegistry


def get_db(name: str = 'default') -> BaseDatabase:
    """등록된 DB 인스턴스 반환"""
    return DatabaseRegistry.get(name)


def _wrap(func: Callable, dbs: tuple, readonly: bool) -> Callable:
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        targets = dbs or (get_db(),)
        async with AsyncExitStack() as stack:
            for db in targets:
                # 이미 열린 트랜잭션이 있으면 재사용 (중첩 호출)
                if not has_connection(db.name):
                    await stack.enter_async_context(db.transaction(readonly=readonly))
            try:
                return await func(*args, **kwargs)
            except aiosqlite.Error as e:
                raise QueryExecutionError(str(e)) from e
    return wrapper


def _decorator(args: tuple, readonly: bool) -> Any:
    # @transactional 형태 (인자 없이 사용)
    if len(args) == 1 and callable(args[0]) and not isinstance(args[0], BaseDatabase):
        return _wrap(args[0], (), readonly)

    def decorator(func: Callable) -> Callable:
        return _wrap(func, args, readonly)
    return decorator


def transactional(*args: Any) -> Any:
    """쓰기 트랜잭션 데코레이터 (BEGIN IMMEDIATE)"""
    return _decorator(args, readonly=False)


def transactional_readonly(*args: Any) -> Any:
    """읽기 전용 트랜잭션 데코레이터 (BEGIN DEFERRED)"""
    return _decorator(args, readonly=True)


__all__ = [
    'transactional',
    'transactional_readonly',
    'get_connection',
    'get_db',
    'DatabaseRegistry',
    'DatabaseError',
    'ConnectionPoolExhaustedError',
    'TransactionError',
    'QueryExecutionError',
    'ReadOnlyTransactionError',
]
