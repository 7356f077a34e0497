from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "p100-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "P100 List")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/p100_dev")
    db_echo: bool = os.getenv("DB_ECHO", "0") == "1"

    # Object storage (Supabase Storage speaks S3; MinIO in dev)
    s3_endpoint: str = os.getenv("S3_ENDPOINT", "http://minio:9000")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "minioadmin")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "minioadmin")
    s3_region: str | None = os.getenv("S3_REGION") or None
    # Base of the public URLs stored in the database: {base}/storage/v1/object/public/{bucket}/{path}
    storage_public_url: str = os.getenv("STORAGE_PUBLIC_URL", "http://localhost:54321").rstrip("/")

    # Admin gate
    admin_panel_slug: str = os.getenv("ADMIN_PANEL_SLUG", "x8k2m9p7")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "")
    admin_secret_key: str = os.getenv("ADMIN_SECRET_KEY", "")
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    admin_token_ttl_min: int = int(os.getenv("ADMIN_TOKEN_TTL_MIN", "240"))
    max_login_attempts: int = int(os.getenv("MAX_LOGIN_ATTEMPTS", "5"))
    login_lockout_seconds: int = int(os.getenv("LOGIN_LOCKOUT_SECONDS", "900"))  # 15 min

    admin_page_size: int = int(os.getenv("ADMIN_PAGE_SIZE", "20"))
    max_screenshot_bytes: int = int(os.getenv("MAX_SCREENSHOT_BYTES", str(10 * 1024 * 1024)))

settings = Settings()
