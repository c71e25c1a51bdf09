"""
트랜잭션 컨텍스트 관리

contextvars로 태스크별 활성 트랜잭션을 DB 이름 단위로 보관합니다.
asyncio 태스크는 생성 시점의 컨텍스트를 복사하므로 dict는 항상 새로 만들어 교체합니다.
"""

from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.sqlite3.connection import TransactionContext

_connections: ContextVar[dict[str, 'TransactionContext'] | None] = ContextVar(
    '_connections', default=None
)


def set_connection(name: str, ctx: 'TransactionContext') -> None:
    """현재 태스크에 트랜잭션 컨텍스트 등록"""
    current = _connections.get() or {}
    _connections.set({**current, name: ctx})


def clear_connection(name: str) -> None:
    """현재 태스크에서 트랜잭션 컨텍스트 제거"""
    current = _connections.get() or {}
    _connections.set({k: v for k, v in current.items() if k != name})


def has_connection(name: str = 'default') -> bool:
    """활성 트랜잭션 존재 여부"""
    return name in (_connections.get() or {})


def get_connection(name: str = 'default') -> 'TransactionContext':
    """
    현재 태스크의 활성 트랜잭션 컨텍스트 반환

    Raises:
        RuntimeError: 트랜잭션 외부에서 호출한 경우
    """
    ctx = (_connections.get() or {}).get(name)
    if ctx is None:
        raise RuntimeError(
            f"No active transaction for database '{name}'. "
            f"Use @transactional or 'async with db.transaction()'."
        )
    return ctx
