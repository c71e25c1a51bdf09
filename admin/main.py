"""Admin API 서버 진입점"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admin.api.router.api import router, schedule_handler, job_handler
from common.config import load_config
from cronmgr.components import Components, build_components
from database.registry import DatabaseRegistry

logger = logging.getLogger(__name__)


def create_app(
    config: dict[str, Any] | None = None,
    components: Components | None = None,
) -> FastAPI:
    """
    FastAPI 앱 생성

    Args:
        config: 전체 설정 (None이면 config/*.yaml 로드)
        components: 이미 조립된 구성 요소. 주어지면 DB 초기화/종료는 호출 측이 담당
    """
    config = config if config is not None else load_config()
    admin_config = config.get('admin', {})
    owns_database = components is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """앱 생명주기 관리"""
        nonlocal components
        if owns_database:
            db_name = admin_config.get('database', 'default')
            await DatabaseRegistry.init_from_config(config, [db_name])
            logger.info("Database initialized")
            components = build_components(config)

        schedule_handler.configure(components.store, components.crontab_sync)
        job_handler.configure(components.store, components.executor)

        yield

        if owns_database:
            await DatabaseRegistry.close_all()
            logger.info("Database closed")

    app = FastAPI(
        title="cronmgr Admin API",
        description="스케줄/잡 관리 및 크론 트리거 API",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS 설정
    cors_config = admin_config.get('cors', {})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config.get('origins', ['*']),
        allow_credentials=cors_config.get('allow_credentials', True),
        allow_methods=cors_config.get('allow_methods', ['*']),
        allow_headers=cors_config.get('allow_headers', ['*']),
    )

    # API 라우터 등록
    app.include_router(router)

    return app


if __name__ == "__main__":
    import uvicorn

    from common.logging import setup_logging

    setup_logging(json_format=False)
    config = load_config()
    admin_config = config.get('admin', {})

    uvicorn.run(
        create_app(config),
        host=admin_config.get('host', '0.0.0.0'),
        port=admin_config.get('port', 5500),
    )
