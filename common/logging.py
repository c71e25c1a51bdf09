"""
JSON 구조화 로깅 설정

ELK/Loki 등 로그 수집 시스템과 연동 가능한 JSON 포맷 로깅을 제공합니다.
잡 단위 로그는 JobLogger로 schedule/job/machine ID를 함께 남깁니다.
"""

import logging
import os
import sys
from typing import Any

from pythonjsonlogger.json import JsonFormatter


class CustomJsonFormatter(JsonFormatter):
    """JSON 로그 포매터"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = self.formatTime(record)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name

        # message 필드 정리
        if 'message' not in log_record and record.getMessage():
            log_record['message'] = record.getMessage()


def setup_logging(
    level: str | None = None,
    json_format: bool = True,
    log_file: str | None = None
) -> None:
    """
    로깅 설정

    Args:
        level: 로그 레벨 (None이면 LOG_LEVEL 환경변수, 기본 INFO)
        json_format: JSON 포맷 사용 여부 (False면 기본 텍스트 포맷)
        log_file: 로그 파일 경로 (None이면 stdout만 사용)
    """
    level = (level or os.environ.get('LOG_LEVEL') or 'INFO').upper()
    log_level = getattr(logging, level, None)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handlers = []

    # stdout 핸들러
    stream_handler = logging.StreamHandler(sys.stdout)

    if json_format:
        formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    # 파일 핸들러 (옵션)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # 루트 로거 설정
    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True  # 기존 설정 덮어쓰기
    )

    if log_level != getattr(logging, level, None):
        logging.getLogger(__name__).warning(f"Unknown log level '{level}', falling back to INFO")

    # 외부 라이브러리 로그 레벨 조정
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('aiosqlite').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


class JobLogger(logging.LoggerAdapter):
    """
    잡 상관관계 ID를 붙이는 로거 어댑터

    텍스트 로그에는 [schedule=.. job=.. machine=..] 접두어를,
    JSON 로그에는 같은 값을 extra 필드로 남깁니다.

    사용 예시:
        log = JobLogger(logger, schedule_id=1, job_id=10)
        log = log.bind(machine_id="e784...")
        log.info("Machine provisioned")
    """

    def __init__(self, logger: logging.Logger, **fields: Any):
        super().__init__(logger, {k: v for k, v in fields.items() if v is not None})

    def bind(self, **fields: Any) -> 'JobLogger':
        """필드를 추가한 새 어댑터 반환"""
        return JobLogger(self.logger, **{**self.extra, **fields})

    def process(self, msg, kwargs):
        prefix = ' '.join(
            f"{key.removesuffix('_id')}={value}" for key, value in self.extra.items()
        )
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        if prefix:
            msg = f"[{prefix}] {msg}"
        return msg, kwargs
