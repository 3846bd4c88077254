from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_path: Path = Path.home() / "AdmissionPortal"
    api_prefix: str = "/api/v1"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    # Object storage
    aws_region: str = "eu-west-3"
    aws_bucket_name: str = "admission-portal"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    s3_endpoint_url: str | None = None
    upload_root: str = "upload_mtym"

    # Uploads are checked here and enforced again by the bucket against the
    # signed Content-Length and checksum.
    max_upload_bytes: int = 15 * 1024 * 1024  # 15 MiB
    accepted_content_types: tuple[str, ...] = (
        "application/pdf",
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/webp",
    )
    upload_url_ttl_seconds: int = 60
    download_url_ttl_seconds: int = 3600

    session_ttl_seconds: int = 60 * 60 * 12
    support_email: str = "math.maroc.fma@gmail.com"

    @property
    def db_path(self) -> Path:
        return self.data_path / "portal.sqlite"

    model_config = {"env_prefix": "PORTAL_"}


settings = Settings()
