import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = os.getenv("ENV", "development")  # development, staging, production
    DEBUG: bool = ENV in ["development", "staging"]

    # Platform settings
    # local  -> SQLAlchemy tables + JWT auth + fsspec storage (dev/tests)
    # remote -> hosted platform over its REST APIs
    PLATFORM_MODE: str = os.getenv("PLATFORM_MODE", "local")
    PLATFORM_URL: str = os.getenv("PLATFORM_URL", "http://localhost:54321")
    PLATFORM_ANON_KEY: str = os.getenv("PLATFORM_ANON_KEY", "")
    PLATFORM_TIMEOUT_SECONDS: float = float(os.getenv("PLATFORM_TIMEOUT_SECONDS", "10"))

    # Local platform database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./fleetdesk.db")

    # Local platform storage (any fsspec URL: file://, memory://, s3://)
    LOCAL_STORAGE_PATH: str = os.getenv("LOCAL_STORAGE_PATH", "./local_storage")
    STORAGE_BASE_URL: str = os.getenv(
        "STORAGE_BASE_URL", f"file://{os.path.abspath(LOCAL_STORAGE_PATH)}"
    )
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
    DOCUMENT_BUCKET: str = os.getenv("DOCUMENT_BUCKET", "driver-documents")
    SIGNED_URL_EXPIRY_SECONDS: int = int(os.getenv("SIGNED_URL_EXPIRY_SECONDS", "3600"))

    # Document upload settings
    MAX_DOCUMENT_SIZE_MB: int = int(os.getenv("MAX_DOCUMENT_SIZE_MB", "25"))
    ALLOWED_DOCUMENT_TYPES: list = [
        "application/pdf",
        "image/jpeg",
        "image/png",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ]
    DOCUMENT_EXPIRY_WARNING_DAYS: int = int(os.getenv("DOCUMENT_EXPIRY_WARNING_DAYS", "30"))

    # Query cache settings
    QUERY_CACHE_MAXSIZE: int = int(os.getenv("QUERY_CACHE_MAXSIZE", "1024"))
    QUERY_CACHE_TTL_SECONDS: int = int(os.getenv("QUERY_CACHE_TTL_SECONDS", "300"))

    # Signed-out sessions remembered by the local platform until their tokens expire
    REVOKED_SESSIONS_MAXSIZE: int = int(os.getenv("REVOKED_SESSIONS_MAXSIZE", "10000"))

    # Auth settings (local platform token signing)
    SECRET_KEY: str = os.getenv("SECRET_KEY", "supersecretkey")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # Frontend URL for auth email links
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # API specific settings
    API_PREFIX: str = "/api/v1"
    APP_NAME: str = "Fleetdesk"
    APP_VERSION: str = "1.0.0"

    class Config:
        case_sensitive = True
        env_file = None


settings = Settings()
