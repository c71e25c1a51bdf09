"""크론 데몬 상태 점검"""

import asyncio
import logging

logger = logging.getLogger(__name__)

CHECK_TIMEOUT_SECONDS = 5


async def check_cron_status(command: tuple[str, ...] = ("service", "cron", "status")) -> tuple[bool, str]:
    """
    크론 데몬 실행 여부 확인

    Returns:
        (실행 중 여부, 결과 메시지)
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        return False, f"failed to check cron status: {e}"

    try:
        output, _ = await asyncio.wait_for(process.communicate(), timeout=CHECK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return False, "failed to check cron status: timed out"

    result = output.decode("utf-8", errors="replace")
    if process.returncode != 0:
        return False, f"failed to check cron status: {result.strip()}"
    if "is running" in result:
        return True, "running"
    return False, result.strip()
