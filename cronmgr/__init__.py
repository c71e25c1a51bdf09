"""cronmgr: 크론 기반 원격 머신 잡 실행/정합성 관리"""

__version__ = "0.1.0"
