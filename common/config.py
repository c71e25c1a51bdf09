"""
설정 파일 로드

config/*.yaml 파일을 읽어 하나의 dict로 병합합니다.
CRONMGR_CONFIG_DIR 환경변수로 설정 디렉토리를 바꿀 수 있습니다.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "CRONMGR_CONFIG_DIR"
DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "config"

CONFIG_FILES = (
    "database.yaml",
    "machine.yaml",
    "executor.yaml",
    "monitor.yaml",
    "sync.yaml",
    "admin.yaml",
)


class ConfigError(Exception):
    """설정 오류 (필수 환경변수 누락, 잘못된 설정 파일 등)"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


def get_config_dir() -> Path:
    """설정 디렉토리 경로"""
    return Path(os.environ.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR))


def load_config(config_dir: str | Path | None = None) -> dict[str, Any]:
    """
    설정 파일 로드 및 병합

    없는 파일은 건너뜁니다. 최상위 키가 겹치면 나중 파일이 우선합니다.

    Raises:
        ConfigError: YAML 파싱 실패 또는 최상위가 mapping이 아닌 경우
    """
    config_path = Path(config_dir) if config_dir else get_config_dir()
    config: dict[str, Any] = {}

    for file_name in CONFIG_FILES:
        file_path = config_path / file_name
        if not file_path.exists():
            logger.debug(f"Config file not found, skipping: {file_path}")
            continue

        try:
            with open(file_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping: {file_path}")
        config.update(data)

    return config


def require_env(name: str) -> str:
    """
    필수 환경변수 조회

    Raises:
        ConfigError: 변수가 없거나 빈 값인 경우
    """
    value = os.environ.get(name)
    if not value:
        raise ConfigError(f"{name} environment variable is required")
    return value
