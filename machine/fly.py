"""
Fly Machines API 클라이언트

httpx.AsyncClient로 Fly Machines REST API(https://api.machines.dev/v1)를 호출합니다.
인증 토큰은 FLY_API_TOKEN 환경변수에서 읽습니다.
"""

import asyncio
import logging
import os
import shlex
from typing import Any

import httpx
from pydantic import BaseModel, Field

from machine.base import BaseMachineClient, MachineClientFactory
from machine.exception import (
    MachineClientError,
    MachineExecError,
    MachineNotFoundError,
    MachineTimeoutError,
    ProvisioningError,
)
from machine.model import (
    ExecResult,
    ExecutionMode,
    JOB_ID_KEY,
    MANAGED_BY_KEY,
    MANAGED_BY_VALUE,
    MachineHandle,
    MachineState,
    SCHEDULE_KEY,
)
from store.model import Job, Schedule

logger = logging.getLogger(__name__)

API_TOKEN_ENV = "FLY_API_TOKEN"

# wait 엔드포인트가 한 번에 허용하는 최대 대기 시간 (초)
MAX_WAIT_SECONDS = 60


class MachineClientConfig(BaseModel):
    """머신 클라이언트 설정"""
    base_url: str = Field(default="https://api.machines.dev/v1")
    api_token: str = Field(default_factory=lambda: os.environ.get(API_TOKEN_ENV, ""))
    request_timeout_seconds: float = Field(default=30.0, gt=0)


class FlyMachineClient(BaseMachineClient):
    """Fly Machines API 클라이언트 (앱 단위)"""

    def __init__(
        self,
        app_name: str,
        config: MachineClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(app_name)
        self._config = config or MachineClientConfig()
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            headers={"Authorization": f"Bearer {self._config.api_token}"},
            timeout=self._config.request_timeout_seconds,
            transport=transport,
        )

    @classmethod
    def factory(
        cls,
        config: MachineClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> MachineClientFactory:
        """앱 이름을 받아 클라이언트를 만드는 팩토리 반환"""
        config = config or MachineClientConfig()
        return lambda app_name: cls(app_name, config, transport)

    @property
    def _machines_path(self) -> str:
        return f"/apps/{self.app_name}/machines"

    async def _request(
        self,
        method: str,
        path: str,
        not_found_id: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        API 요청 및 오류 변환

        404는 not_found_id가 있으면 MachineNotFoundError로 변환합니다.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise MachineTimeoutError(f"{method} {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise MachineClientError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404 and not_found_id is not None:
            raise MachineNotFoundError(not_found_id)
        if response.status_code == 408:
            raise MachineTimeoutError(f"{method} {path} timed out: {_error_text(response)}")
        if response.is_error:
            raise MachineClientError(
                f"{method} {path} failed with status {response.status_code}: {_error_text(response)}",
                status_code=response.status_code,
            )
        return response

    def _build_launch_config(self, schedule: Schedule, job: Job, mode: ExecutionMode) -> dict[str, Any]:
        config = schedule.config.to_api()
        config["metadata"] = {
            **config.get("metadata", {}),
            MANAGED_BY_KEY: MANAGED_BY_VALUE,
            JOB_ID_KEY: str(job.id),
            SCHEDULE_KEY: schedule.name,
        }
        if mode is ExecutionMode.INIT:
            # 명령을 init으로 실행하고 종료 후 자동 파기
            config["init"] = {**config.get("init", {}), "cmd": shlex.split(schedule.command)}
            config["auto_destroy"] = True
        return config

    async def provision(
        self,
        schedule: Schedule,
        job: Job,
        mode: ExecutionMode = ExecutionMode.EXEC,
    ) -> MachineHandle:
        try:
            config = self._build_launch_config(schedule, job, mode)
        except ValueError as e:
            raise ProvisioningError(f"invalid command {schedule.command!r}: {e}") from e

        body = {"region": schedule.region, "config": config}
        try:
            response = await self._request("POST", self._machines_path, json=body)
            handle = MachineHandle.model_validate(response.json())
        except (MachineClientError, MachineTimeoutError) as e:
            raise ProvisioningError(f"failed to launch machine: {e.message}") from e
        except ValueError as e:
            raise ProvisioningError(f"failed to parse launch response: {e}") from e

        if handle.state is MachineState.FAILED:
            raise ProvisioningError(f"machine {handle.id} failed to launch", handle=handle)

        logger.info(f"Machine {handle.id} created under app {self.app_name} (region={handle.region})")
        return handle

    async def wait_for_state(
        self,
        handle: MachineHandle,
        state: MachineState,
        timeout: float,
    ) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise MachineTimeoutError(
                    f"machine {handle.id} did not reach '{state.value}' within {timeout}s"
                )

            wait_seconds = max(1, min(MAX_WAIT_SECONDS, int(remaining)))
            params = {"state": state.value, "timeout": wait_seconds}
            if handle.instance_id:
                params["instance_id"] = handle.instance_id

            try:
                await self._request(
                    "GET",
                    f"{self._machines_path}/{handle.id}/wait",
                    not_found_id=handle.id,
                    params=params,
                    timeout=wait_seconds + self._config.request_timeout_seconds,
                )
                return
            except MachineTimeoutError:
                logger.debug(f"Still waiting for machine {handle.id} to reach '{state.value}'")

    async def exec(self, command: str, machine_id: str, timeout: float) -> ExecResult:
        body = {"cmd": command, "timeout": int(timeout)}
        try:
            response = await self._request(
                "POST",
                f"{self._machines_path}/{machine_id}/exec",
                json=body,
                timeout=timeout + self._config.request_timeout_seconds,
            )
        except MachineTimeoutError:
            raise
        except MachineClientError as e:
            raise MachineExecError(machine_id, e.message) from e
        return ExecResult.model_validate(response.json())

    async def get(self, machine_id: str) -> MachineHandle:
        response = await self._request(
            "GET", f"{self._machines_path}/{machine_id}", not_found_id=machine_id
        )
        return MachineHandle.model_validate(response.json())

    async def destroy(self, handle: MachineHandle) -> None:
        try:
            await self._request(
                "DELETE",
                f"{self._machines_path}/{handle.id}",
                not_found_id=handle.id,
                params={"force": "true"},
            )
        except MachineNotFoundError:
            logger.debug(f"Machine {handle.id} already gone")
            return
        logger.info(f"Machine {handle.id} destroyed")

    async def list(self, state: MachineState | None = None) -> list[MachineHandle]:
        response = await self._request("GET", self._machines_path)
        machines = [MachineHandle.model_validate(m) for m in response.json()]
        if state is not None:
            machines = [m for m in machines if m.state is state]
        return machines

    async def close(self) -> None:
        await self._client.aclose()


def _error_text(response: httpx.Response) -> str:
    """API 오류 응답 본문에서 메시지 추출"""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return response.text
