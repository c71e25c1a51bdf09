"""
데이터베이스 레지스트리

database.yaml의 databases 섹션을 읽어 이름별 DB 인스턴스를 관리합니다.

설정 예시:
    databases:
      default:
        type: sqlite
        path: /data/state.db
        pool:
          pool_size: 5
"""

import logging
from typing import Any

from database.base import BaseDatabase

logger = logging.getLogger(__name__)


class DatabaseRegistry:
    """이름 기반 DB 인스턴스 레지스트리"""

    _databases: dict[str, BaseDatabase] = {}

    @classmethod
    async def init_from_config(
        cls,
        config: dict[str, Any],
        names: list[str] | None = None,
    ) -> None:
        """
        설정에서 DB 초기화

        Args:
            config: databases 섹션을 포함한 설정 dict
            names: 초기화할 DB 이름 목록 (None이면 전체)
        """
        databases = config.get('databases', {})
        targets = names if names is not None else list(databases.keys())

        for name in targets:
            if name in cls._databases:
                logger.debug(f"Database '{name}' already initialized, skipping")
                continue
            if name not in databases:
                raise KeyError(f"Database '{name}' is not defined in config")

            db_config = databases[name]
            db_type = db_config.get('type', 'sqlite')
            if db_type != 'sqlite':
                raise ValueError(f"Unsupported database type: {db_type}")

            from database.sqlite3.connection import SQLiteDatabase
            cls._databases[name] = await SQLiteDatabase.create(name, db_config)
            logger.info(f"Database registered: {name} ({db_type})")

    @classmethod
    def register(cls, db: BaseDatabase) -> None:
        """생성된 DB 인스턴스 등록"""
        cls._databases[db.name] = db

    @classmethod
    def get(cls, name: str = 'default') -> BaseDatabase:
        """
        이름으로 DB 조회

        Raises:
            KeyError: 등록되지 않은 이름
        """
        if name not in cls._databases:
            raise KeyError(f"Database '{name}' is not registered")
        return cls._databases[name]

    @classmethod
    def get_all(cls) -> dict[str, BaseDatabase]:
        return dict(cls._databases)

    @classmethod
    def clear(cls) -> None:
        """레지스트리 초기화 (연결은 닫지 않음)"""
        cls._databases = {}

    @classmethod
    async def close_all(cls) -> None:
        """모든 DB 연결 종료 후 레지스트리 초기화"""
        for name, db in list(cls._databases.items()):
            try:
                await db.close()
            except Exception as e:
                logger.error(f"Error closing database '{name}': {e}")
        cls._databases = {}
