"""Configuration settings for itemzip.

Values are read from the environment (or a local ``.env`` file) once per
process and exposed through the module-level ``settings`` singleton.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the import/export service.

    Attributes:
        PROJECT_NAME: Name used in logs and OpenAPI metadata.
        ENVIRONMENT: Deployment environment (local, test, dev, prd).
        LOG_LEVEL: Root level for the itemzip logger.
        LOG_FORMAT: ``text`` for human-readable lines, ``json`` for log shippers.
        TMP_FOLDER_PATH: Parent directory of the per-request workspaces.
        STORAGE_PATH: Root directory of the local file storage backend.
        FILE_ITEM_TYPE: Which storage backs file items (``file`` or ``s3File``).
        FILE_PATH_PREFIX: Prefix of the storage keys created on upload.
        MAX_UPLOAD_SIZE_BYTES: Maximum accepted archive size for imports.
        FILENAME_TRUNCATE_LIMIT: Maximum length of imported file item names.
        MAX_TREE_DEPTH: Maximum folder nesting handled by export and import.
        EXPORT_FETCH_CONCURRENCY: Concurrent content retrievals during export.
        ARCHIVE_COMPRESSION: ``stored`` (no compression) or ``deflated``.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "itemzip"
    ENVIRONMENT: str = "local"

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["text", "json"] = "text"

    TMP_FOLDER_PATH: Path = Path("/tmp/itemzip")
    STORAGE_PATH: Path = Path("./local_storage")

    FILE_ITEM_TYPE: Literal["file", "s3File"] = "file"
    FILE_PATH_PREFIX: str = "files"

    S3_BUCKET: Optional[str] = None
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY_ID: Optional[str] = None
    S3_SECRET_ACCESS_KEY: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None
    S3_USE_SSL: bool = True

    MAX_UPLOAD_SIZE_BYTES: int = Field(default=250 * 1024 * 1024, gt=0)
    FILENAME_TRUNCATE_LIMIT: int = Field(default=100, gt=0)
    MAX_TREE_DEPTH: int = Field(default=64, gt=0)
    EXPORT_FETCH_CONCURRENCY: int = Field(default=8, gt=0)
    ARCHIVE_COMPRESSION: Literal["stored", "deflated"] = "stored"

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the log level name and reject unknown levels."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_local(self) -> bool:
        """Whether the service runs in a local or test environment."""
        return self.ENVIRONMENT in ("local", "test")


settings = Settings()
