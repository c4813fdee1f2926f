from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Imagepack API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "./logs"
    LOG_TO_FILE: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    API_V1_PREFIX: str = "/api/v1"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    # Artifact storage
    STORAGE_ROOT: str = "./data/batches"
    ARTIFACT_TTL_SECONDS: int = 3600  # 1 hour

    # Derivative profiles
    DESKTOP_WIDTH: int = 1000
    MOBILE_WIDTH: int = 700
    WEBP_QUALITY: int = 100
    WEBP_METHOD: int = 6

    # Processing
    MAX_UPLOAD_SIZE: int = 52428800  # 50MB
    MAX_CONCURRENT_FILES: int = 4

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @property
    def storage_path(self) -> Path:
        """Get absolute Path object for the batch storage root"""
        path = Path(self.STORAGE_ROOT).resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path


# Global settings instance
settings = Settings()
