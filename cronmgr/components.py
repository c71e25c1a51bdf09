"""
구성 요소 조립

설정 dict에서 Store, Executor, Monitor, Reconciler, 동기화 객체를 만듭니다.
"""

from dataclasses import dataclass, field
from typing import Any

from executor import Executor, ExecutorConfig
from machine import FlyMachineClient, MachineClientConfig, MachineClientFactory
from monitor import Monitor, MonitorConfig
from reconciler import Reconciler
from store import Store
from sync import CrontabSync, ScheduleSync, SyncConfig


@dataclass
class Components:
    """조립된 구성 요소"""
    store: Store
    client_factory: MachineClientFactory
    executor: Executor
    monitor: Monitor
    reconciler: Reconciler
    schedule_sync: ScheduleSync
    crontab_sync: CrontabSync
    sync_config: SyncConfig = field(default_factory=SyncConfig)


def build_components(
    config: dict[str, Any],
    client_factory: MachineClientFactory | None = None,
) -> Components:
    """
    설정으로 구성 요소 생성

    Args:
        config: load_config()로 읽은 전체 설정
        client_factory: 머신 클라이언트 팩토리 (None이면 Fly 클라이언트)
    """
    store = Store()
    if client_factory is None:
        machine_config = MachineClientConfig(**config.get("machine", {}))
        client_factory = FlyMachineClient.factory(machine_config)

    sync_config = SyncConfig(**config.get("sync", {}))

    return Components(
        store=store,
        client_factory=client_factory,
        executor=Executor(store, client_factory, ExecutorConfig(**config.get("executor", {}))),
        monitor=Monitor(store, client_factory, MonitorConfig(**config.get("monitor", {}))),
        reconciler=Reconciler(store, client_factory),
        schedule_sync=ScheduleSync(store, sync_config.schedules_file),
        crontab_sync=CrontabSync(store, sync_config),
        sync_config=sync_config,
    )
