"""
cronmgr 서비스 기동

기동 순서:
    1. 필수 환경변수 확인 (FLY_API_TOKEN)
    2. DB 초기화
    3. 스케줄 정의 파일 -> Store 동기화, 크론탭 재생성 (실패 시 경고만)
    4. Reconciler 1회 실행 (끝날 때까지 다른 작업 시작 안 함)
    5. Monitor, Admin API 동시 실행 (SIGINT/SIGTERM 시 종료)
"""

import asyncio
import logging
import signal
import sys
from typing import Any

from common.config import load_config, require_env
from cronmgr.components import Components, build_components
from database.registry import DatabaseRegistry
from machine import MachineClientFactory
from machine.fly import API_TOKEN_ENV
from sync import SyncError

logger = logging.getLogger(__name__)

VALID_MODULES = ("monitor", "admin")


async def sync_all(components: Components) -> None:
    """스케줄 정의 동기화 후 크론탭 재생성 (실패해도 기동은 계속)"""
    try:
        await components.schedule_sync.sync()
    except SyncError as e:
        logger.warning(f"There was a problem syncing your schedules: {e.message}")
        return

    try:
        await components.crontab_sync.sync()
    except SyncError as e:
        logger.warning(f"Failed to sync crontab: {e.message}")


async def run_monitor(components: Components, stop_event: asyncio.Event):
    """Monitor 실행"""
    monitor = components.monitor

    async def wait_stop():
        await stop_event.wait()
        await monitor.stop()

    waiter = asyncio.create_task(wait_stop())
    try:
        await monitor.start()
    finally:
        waiter.cancel()


async def run_admin(config: dict[str, Any], components: Components, stop_event: asyncio.Event):
    """Admin API 실행"""
    import uvicorn
    from admin.main import create_app

    admin_config = config.get("admin", {})
    uv_config = uvicorn.Config(
        create_app(config, components),
        host=admin_config.get("host", "0.0.0.0"),
        port=admin_config.get("port", 5500),
        log_level="info",
    )
    server = uvicorn.Server(uv_config)

    async def wait_stop():
        await stop_event.wait()
        server.should_exit = True

    waiter = asyncio.create_task(wait_stop())
    try:
        await server.serve()
    finally:
        waiter.cancel()


async def start(
    modules: list[str] | None = None,
    config: dict[str, Any] | None = None,
    client_factory: MachineClientFactory | None = None,
) -> None:
    """
    서비스 기동

    Args:
        modules: 실행할 모듈 (None이면 monitor, admin 모두)
        config: 전체 설정 (None이면 config/*.yaml 로드)
        client_factory: 머신 클라이언트 팩토리 (None이면 Fly 클라이언트)

    Raises:
        ConfigError: 필수 환경변수 누락
        DatabaseError: 저장소 오류 (초기화, 정합성 복구, Monitor 목록 조회)
    """
    modules = list(modules or VALID_MODULES)
    config = config if config is not None else load_config()

    if client_factory is None:
        require_env(API_TOKEN_ENV)

    await DatabaseRegistry.init_from_config(config, ["default"])

    try:
        components = build_components(config, client_factory)

        await sync_all(components)
        await components.reconciler.reconcile()

        # 종료 이벤트
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def signal_handler():
            logger.info("Received shutdown signal")
            stop_event.set()

        if sys.platform != "win32":
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, signal_handler)

        tasks = []
        if "monitor" in modules:
            tasks.append(asyncio.create_task(run_monitor(components, stop_event)))
            logger.info("Monitor started")
        if "admin" in modules:
            tasks.append(asyncio.create_task(run_admin(config, components, stop_event)))
            logger.info("Admin API started")

        try:
            await asyncio.gather(*tasks)
        finally:
            # 한 모듈이 실패하면 나머지도 멈춤
            stop_event.set()
            await asyncio.gather(*tasks, return_exceptions=True)
    finally:
        await DatabaseRegistry.close_all()
        logger.info("All modules stopped")
