"""Admin API 모델 패키지"""
