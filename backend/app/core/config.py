"""
Application configuration using Pydantic Settings
"""
from typing import List
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB: str = "past_questions"

    # Redis
    REDIS_URL: str = "redis://localhost:6379"

    # MinIO / S3
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin123"
    MINIO_BUCKET: str = "past-questions"
    MINIO_SECURE: bool = False
    # Public base URL for stored objects, e.g. "https://cdn.example.com/past-questions".
    # Empty means "<scheme>://<MINIO_ENDPOINT>/<MINIO_BUCKET>".
    MINIO_PUBLIC_URL: str = ""
    STORAGE_FOLDER: str = "university-past-questions"

    # JWT Authentication
    JWT_SECRET: str = "supersecretkey_change_in_production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24
    JWT_REFRESH_EXPIRATION_DAYS: int = 7

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # File Upload
    MAX_UPLOAD_SIZE_MB: int = 25
    ALLOWED_UPLOAD_CONTENT_TYPES: List[str] = [
        "image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp", "image/bmp",
        "application/pdf",
        "text/plain",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ]

    # Downloads and previews
    DOWNLOAD_URL_EXPIRY_MINUTES: int = 60
    THUMBNAIL_WIDTH: int = 800
    THUMBNAIL_HEIGHT: int = 600
    DOCUMENT_VIEWER_URL: str = "https://docs.google.com/gview?embedded=1&url={url}"

    # Portal statistics
    STATS_CACHE_TTL_SECONDS: int = 300  # 5 minutes

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance"""
    return Settings()


settings = get_settings()
