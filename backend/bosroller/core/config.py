from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Server Configuration
    frontend_url: Optional[str] = None
    api_base_url: str = "http://localhost:8000"

    # Database
    database_url: str = "sqlite+aiosqlite:///./bosroller.db"
    sqlalchemy_echo: bool = False

    # MinIO (video storage bucket)
    minio_endpoint: str = "localhost:9000"
    minio_public_endpoint: Optional[str] = None
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket_name: str = "videos"
    minio_secure: bool = False
    storage_path_prefix: str = "B3CG"
    storage_cache_control: str = "3600"

    # Security
    secret_key: str = "your-secret-key-here-change-this-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # n8n workflow engine
    n8n_webhook_url: Optional[str] = None
    n8n_chat_webhook_url: Optional[str] = None
    n8n_webhook_auth: Optional[str] = None
    # None keeps aiohttp's default timeout
    n8n_timeout_seconds: Optional[float] = None

    # Analysis callbacks
    callback_ignore_duplicates: bool = False

    # Google Drive integration (startup validation only)
    google_drive_enabled: bool = False
    google_service_account_email: Optional[str] = None
    google_private_key: Optional[str] = None
    google_drive_root_folder_id: Optional[str] = None

    # Application
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    strict_config_validation: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "allow"

    @property
    def callback_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/functions/v1/receive-analysis"


settings = Settings()
