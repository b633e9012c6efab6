"""
Application Configuration
Add constants, storage backends and image processing settings here
"""

from functools import lru_cache
from pathlib import Path
from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load .env file into os.environ so os.getenv() works correctly
# This must happen before Settings class is instantiated
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


DEFAULT_MIME_TYPES = ["image/gif", "image/jpg", "image/jpeg", "image/png"]


# Define settings class for univeral access
class Settings(BaseSettings):
    LOG_LEVEL: str = "INFO"

    # Storage backends
    STORAGE_DEFAULT: str = "local"
    STORAGE_LOCAL_ROOT: str = "storage"
    STORAGE_S3_URI: str | None = None
    # {"local": "http://localhost:8000/storage", "s3": "https://cdn.example.com"}
    STORAGE_PUBLIC_URLS: dict[str, str] = {}

    # AWS Credentials
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None
    AWS_REGION: str | None = None

    # Image processing
    IMAGE_QUALITY: int = 90
    IMAGE_MIME_TYPES: list[str] = DEFAULT_MIME_TYPES
    TEMP_DIR: str | None = None

    # Path templates, see api.filerecord.paths.PathBuilder
    PATH_TEMPLATE: str = "{model}/{random_path}/{stripped_id}/{stripped_id}.{extension}"
    VARIANT_PATH_TEMPLATE: str = (
        "{model}/{random_path}/{stripped_id}/{basename}.{variant}.{extension}"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL `{value}` is not a logging level")
        return value

    @field_validator("IMAGE_QUALITY")
    @classmethod
    def _check_quality(cls, value: int) -> int:
        if not 1 <= value <= 100:
            raise ValueError(
                f"IMAGE_QUALITY has to be between 1 and 100, {value} was provided"
            )
        return value

    @computed_field
    @property
    def STORAGE_BACKENDS(self) -> list[str]:
        """Names of the storage backends that will be registered"""
        backends = ["local"]
        if self.STORAGE_S3_URI:
            backends.append("s3")
        return backends

    # Read environment variables from .env file, if it exists
    # extra='ignore' prevents validation errors from extra env vars
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Export settings
@lru_cache
def get_settings() -> Settings:
    """
    Get settings instance, cached for performance
    """
    return Settings()


if __name__ == "__main__":
    # To use in other modules
    # from core.config import get_settings
    print(get_settings().model_dump())
