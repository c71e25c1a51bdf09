"""
cronmgr 통합 진입점

스케줄/크론탭 동기화와 정합성 복구 후 Monitor, Admin API를 실행합니다.

사용법:
    python main.py                 # 전체 실행
    python main.py monitor         # Monitor만
    python main.py admin           # Admin API만
"""

import asyncio
import sys

from common.config import ConfigError
from common.logging import setup_logging
from cronmgr.server import VALID_MODULES, start


if __name__ == "__main__":
    args = sys.argv[1:]

    if args:
        modules = [m for m in args if m in VALID_MODULES]
        if not modules:
            print("Usage: python main.py [monitor] [admin]")
            sys.exit(1)
    else:
        modules = list(VALID_MODULES)

    setup_logging()
    print(f"Starting cronmgr: {', '.join(modules)}")
    try:
        asyncio.run(start(modules))
    except ConfigError as e:
        print(f"Error: {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
