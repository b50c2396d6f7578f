"""Configuration for FastAPI application."""

from pydantic_settings import BaseSettings
from pydantic import validator
from typing import List, Optional, Union
import json


class Settings(BaseSettings):
    # API Configuration
    api_prefix: str = "/api/v1"
    api_title: str = "oculus-backup API"
    api_version: str = "0.3.0"
    allowed_origins: Union[str, List[str]] = ["*"]

    @validator('allowed_origins', pre=True)
    def parse_allowed_origins(cls, v):
        """Parse allowed_origins from string or list."""
        if isinstance(v, str):
            # If it's a JSON array string, parse it
            if v.startswith('['):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v]
            # Single origin string
            return [v]
        return v

    # Upload limit for restore archives
    max_upload_bytes: int = 512 * 1024 * 1024

    # Redis for job tracking (and redis document storage when selected)
    redis_url: Optional[str] = None
    redis_password: Optional[str] = None

    # Document storage
    storage_backend: Optional[str] = None
    working_dir: Optional[str] = None

    # Archives
    backup_dir: Optional[str] = None
    backup_share_dir: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables


settings = Settings()
