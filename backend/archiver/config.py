from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # "sql" (SQLAlchemy), "realtime" (Firebase-style tree) or "supabase"
    # (managed Postgres + S3-compatible object storage)
    backend: str = "sql"
    data_dir: Path = Path.home() / "Archiver"
    database_url: str | None = None

    storage: str = "local"  # "local" or "s3"
    storage_dir: Path | None = None
    s3_bucket: str = "documents"
    s3_endpoint_url: str | None = None
    s3_region: str | None = None
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None

    firebase_database_url: str | None = None
    firebase_auth_token: str | None = None

    admin_username: str = "admin"
    # argon2 hash, see archiver.utils.security.hash_password
    admin_password_hash: str | None = None
    session_ttl_seconds: int = 8 * 60 * 60

    max_upload_bytes: int = 50 * 1024 * 1024  # 50 MiB per file
    api_prefix: str = "/api"
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    log_level: str = "INFO"

    @property
    def resolved_database_url(self) -> str:
        return self.database_url or f"sqlite:///{self.data_dir / 'archive.sqlite'}"

    @property
    def resolved_storage_dir(self) -> Path:
        return self.storage_dir or self.data_dir / "files"

    @property
    def resolved_storage(self) -> str:
        if self.backend == "supabase":
            return "s3"
        return self.storage

    model_config = {"env_prefix": "ARCHIVER_"}


settings = Settings()
