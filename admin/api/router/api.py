"""Admin API 라우터 (모든 API 통합)"""

import logging

from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from admin.api.model.common import ErrorResponse, HealthResponse, SyncResponse
from admin.api.model.job import JobListResponse, JobResponse, TriggerRequest
from admin.api.model.schedule import (
    ScheduleCreateRequest,
    ScheduleListResponse,
    ScheduleResponse,
)
from admin.api.handler.flycheck import check_cron_status
from admin.api.handler.job import JobHandler
from admin.api.handler.schedule import ScheduleHandler
from admin.exception import (
    JobNotFoundError,
    ScheduleDuplicateError,
    ScheduleNotFoundError,
    ScheduleValidationError,
)
from sync import CrontabInstallError

logger = logging.getLogger(__name__)

router = APIRouter()

# 핸들러 인스턴스 (lifespan에서 configure)
schedule_handler = ScheduleHandler()
job_handler = JobHandler()


def render_error(error: Exception) -> JSONResponse:
    """{"error": "<message>"} 형식의 500 응답"""
    message = getattr(error, "message", None) or str(error)
    return JSONResponse(status_code=500, content=ErrorResponse(error=message).model_dump())


# ============================================
# COMMAND API (크론 트리거)
# ============================================

@router.post(
    "/command/jobs/trigger",
    responses={500: {"model": ErrorResponse}},
    tags=["Command"],
)
async def trigger_job(request: Request):
    """스케줄 1회 실행 (성공 시 빈 200 응답, 잘못된 요청 본문도 500)"""
    try:
        trigger = TriggerRequest.model_validate_json(await request.body())
    except ValidationError as e:
        message = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
        )
        logger.error(f"Invalid trigger request: {message}")
        return render_error(ValueError(f"invalid request body: {message}"))

    try:
        await job_handler.trigger(trigger.id)
    except Exception as e:
        logger.error(f"Failed to process job for schedule {trigger.id}: {e}")
        return render_error(e)
    return Response(status_code=200)


# ============================================
# SCHEDULE API
# ============================================

@router.get("/api/schedules", response_model=ScheduleListResponse, tags=["Schedule"])
async def get_schedules():
    """스케줄 목록 조회"""
    items = await schedule_handler.get_list()
    return ScheduleListResponse(items=items, total=len(items))


@router.get("/api/schedules/{schedule_id}", response_model=ScheduleResponse, tags=["Schedule"])
async def get_schedule(schedule_id: int):
    """스케줄 상세 조회"""
    try:
        return await schedule_handler.get_by_id(schedule_id)
    except ScheduleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/api/schedules", response_model=ScheduleResponse, status_code=201, tags=["Schedule"])
async def create_schedule(request: ScheduleCreateRequest):
    """스케줄 생성"""
    try:
        return await schedule_handler.create(request)
    except ScheduleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ScheduleDuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/api/schedules/{schedule_id}", status_code=204, tags=["Schedule"])
async def delete_schedule(schedule_id: int):
    """스케줄 삭제 (잡 이력 포함)"""
    try:
        await schedule_handler.delete(schedule_id)
        return Response(status_code=204)
    except ScheduleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/api/schedules/sync",
    response_model=SyncResponse,
    responses={500: {"model": ErrorResponse}},
    tags=["Schedule"],
)
async def sync_crontab():
    """활성 스케줄로 크론탭 재생성"""
    try:
        synced = await schedule_handler.sync_crontab()
    except CrontabInstallError as e:
        logger.error(f"Failed to sync crontab: {e}")
        return render_error(e)
    return SyncResponse(synced=synced)


# ============================================
# JOB API
# ============================================

@router.get("/api/schedules/{schedule_id}/jobs", response_model=JobListResponse, tags=["Job"])
async def get_jobs(
    schedule_id: int,
    limit: int = Query(default=10, ge=1, le=100, description="조회 개수"),
):
    """스케줄의 최근 잡 목록 (최신순)"""
    try:
        items = await job_handler.get_list_by_schedule(schedule_id, limit)
    except ScheduleNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return JobListResponse(items=items, total=len(items))


@router.get("/api/jobs/{job_id}", response_model=JobResponse, tags=["Job"])
async def get_job(job_id: int):
    """잡 상세 조회"""
    try:
        return await job_handler.get_by_id(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ============================================
# Health Check
# ============================================

@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """서버 상태 확인 (liveness probe)"""
    from database import get_db
    try:
        db = get_db()
        db_status = "connected" if db.pool.available > 0 else "busy"
    except KeyError:
        db_status = "disconnected"

    return HealthResponse(status="healthy", database=db_status, version="1.0.0")


@router.get("/flycheck/cron", response_class=PlainTextResponse, tags=["Health"])
async def cron_check():
    """크론 데몬 실행 여부 확인"""
    running, message = await check_cron_status()
    return PlainTextResponse(message, status_code=200 if running else 500)
