"""cronmgr CLI"""

import argparse
import asyncio
import sys
from typing import Any, Awaitable, Callable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from common.config import ConfigError, load_config
from common.logging import setup_logging
from cronmgr import __version__
from cronmgr.components import Components, build_components
from database.exception import DatabaseError
from database.registry import DatabaseRegistry
from executor import JobFailedError
from store import Job, Schedule
from sync import SyncError

console = Console()


def print_table(headers: list[str], rows: list[list[Any]], title: str | None = None) -> None:
    """표 형식 출력"""
    table = Table(title=title)
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*(escape(str(value)) for value in row))
    console.print(table)


def _format_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


async def with_components(
    config: dict[str, Any],
    command: Callable[[Components], Awaitable[None]],
) -> None:
    """DB 초기화 -> 명령 실행 -> DB 종료"""
    await DatabaseRegistry.init_from_config(config, ["default"])
    try:
        await command(build_components(config))
    finally:
        await DatabaseRegistry.close_all()


# ============================================
# schedules
# ============================================

async def list_schedules(components: Components) -> None:
    schedules: list[Schedule] = await components.store.list_schedules()
    print_table(
        ["ID", "Name", "Target App", "Image", "Schedule", "Region", "Enabled", "Command"],
        [
            [s.id, s.name, s.app_name, s.config.image, s.schedule, s.region, s.enabled, s.command]
            for s in schedules
        ],
    )


async def sync_schedules(components: Components, path: str | None = None) -> None:
    result = await components.schedule_sync.sync(path)
    print(
        f"Schedules synced: {len(result.created)} created, {len(result.updated)} updated, "
        f"{len(result.unchanged)} unchanged, {len(result.deleted)} deleted"
    )

    synced = await components.crontab_sync.sync()
    print(f"Crontab synced: {synced} schedule(s)")


# ============================================
# jobs
# ============================================

async def list_jobs(components: Components, schedule_id: int, limit: int) -> None:
    # 스케줄이 없으면 ScheduleNotFoundError
    await components.store.find_schedule(schedule_id)
    jobs: list[Job] = await components.store.list_jobs(schedule_id, limit)
    print_table(
        ["ID", "Status", "Machine ID", "Exit Code", "Created At", "Updated At", "Finished At"],
        [
            [
                j.id,
                j.status.value,
                j.machine_id or "",
                "" if j.exit_code is None else j.exit_code,
                _format_time(j.created_at),
                _format_time(j.updated_at),
                _format_time(j.finished_at),
            ]
            for j in jobs
        ],
    )


async def show_job(components: Components, job_id: int) -> None:
    job = await components.store.find_job(job_id)
    print_table(
        ["Field", "Value"],
        [
            ["ID", job.id],
            ["Schedule ID", job.schedule_id],
            ["Status", job.status.value],
            ["Machine ID", job.machine_id or ""],
            ["Exit Code", "" if job.exit_code is None else job.exit_code],
            ["Created At", _format_time(job.created_at)],
            ["Updated At", _format_time(job.updated_at)],
            ["Finished At", _format_time(job.finished_at)],
        ],
    )
    if job.stdout:
        print("\nStdout:")
        print(job.stdout)
    if job.stderr:
        print("\nStderr:")
        print(job.stderr)


async def trigger_job(components: Components, schedule_id: int) -> None:
    job = await components.executor.process_job(schedule_id)
    print(f"Job {job.id} {job.status.value}")


# ============================================
# entry points
# ============================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cronmgr",
        description="cronmgr - 크론 기반 일회성 머신 잡 실행 관리자"
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # start
    start_parser = subparsers.add_parser("start", help="Sync, reconcile and run the service")
    start_parser.add_argument(
        "modules",
        nargs="*",
        choices=["monitor", "admin"],
        help="Modules to run (default: monitor admin)",
    )

    # monitor
    subparsers.add_parser("monitor", help="Run the monitor only")

    # schedules
    schedules_parser = subparsers.add_parser("schedules", help="Manage schedules")
    schedules_sub = schedules_parser.add_subparsers(dest="action")
    schedules_sub.add_parser("list", help="List all schedules")
    sync_parser = schedules_sub.add_parser("sync", help="Sync schedules file and crontab")
    sync_parser.add_argument("-f", "--file", default=None, help="Schedules file path")

    # jobs
    jobs_parser = subparsers.add_parser("jobs", help="Inspect and trigger jobs")
    jobs_sub = jobs_parser.add_subparsers(dest="action")
    list_parser = jobs_sub.add_parser("list", help="List recent jobs for a schedule")
    list_parser.add_argument("schedule_id", type=int)
    list_parser.add_argument("-l", "--limit", type=int, default=10)
    show_parser = jobs_sub.add_parser("show", help="Show job details")
    show_parser.add_argument("job_id", type=int)
    trigger_parser = jobs_sub.add_parser("trigger", help="Trigger a job for a schedule")
    trigger_parser.add_argument("schedule_id", type=int)

    return parser


def _dispatch(args: argparse.Namespace, config: dict[str, Any]) -> Awaitable[None] | None:
    if args.command == "start":
        from cronmgr.server import start
        return start(args.modules or None, config)
    if args.command == "monitor":
        from cronmgr.server import start
        return start(["monitor"], config)

    if args.command == "schedules":
        if args.action == "list":
            return with_components(config, list_schedules)
        if args.action == "sync":
            return with_components(config, lambda c: sync_schedules(c, args.file))

    if args.command == "jobs":
        if args.action == "list":
            return with_components(config, lambda c: list_jobs(c, args.schedule_id, args.limit))
        if args.action == "show":
            return with_components(config, lambda c: show_job(c, args.job_id))
        if args.action == "trigger":
            return with_components(config, lambda c: trigger_job(c, args.schedule_id))

    return None


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(json_format=args.command in ("start", "monitor"))

    try:
        config = load_config()
        command = _dispatch(args, config)
        if command is None:
            parser.print_help()
            sys.exit(1)
        asyncio.run(command)
    except (ConfigError, DatabaseError, SyncError, JobFailedError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nShutdown requested by user")


def process_job_main(argv: list[str] | None = None) -> None:
    """크론탭에서 호출하는 진입점: process-job <schedule_id>"""
    parser = argparse.ArgumentParser(prog="process-job", description="Run one job for a schedule")
    parser.add_argument("schedule_id", type=int)
    args = parser.parse_args(argv)

    setup_logging()

    try:
        config = load_config()
        asyncio.run(with_components(config, lambda c: trigger_job(c, args.schedule_id)))
    except (ConfigError, DatabaseError, JobFailedError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
