# recipe_api/core/config.py
# 환경변수 로딩 (.env)
from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGO_DB: str = "recipe_db"
    MONGO_COLLECTION: str = "recipes"

    # 모든 DB 호출에 적용되는 데드라인(초). 재시도 없음
    DB_TIMEOUT_SEC: float = 5.0
    DB_CONNECT_RETRIES: int = 10

    # 업로드 이미지 저장 위치 / 최대 크기 (2MB)
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 2 * 1024 * 1024

    HOST: str = "0.0.0.0"
    PORT: int = 8081
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"

settings = Settings()
