from pydantic_settings import BaseSettings
from typing import Optional
import os

class Settings(BaseSettings):
    PROJECT_NAME: str = "YouTube Music Proxy Server"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    CORS_ORIGINS: list[str] = ["*"]
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Upstream timeouts (seconds)
    PROBE_TIMEOUT: float = 5
    STREAM_TIMEOUT: float = 30
    SOCKET_TIMEOUT: float = 10
    # Budget for resolution + probe + stream open, 0 disables
    REQUEST_TIMEOUT: float = 45

    # Resolution ladder
    JITTER_MIN: float = 0.5
    JITTER_MAX: float = 1.5
    RESOLVE_ATTEMPTS: int = 3

    # Proxy streaming
    STREAM_CHUNK_SIZE: int = 1024 * 128
    DEFAULT_AUDIO_CONTENT_TYPE: str = "audio/webm"
    STRICT_RANGE_RESPONSES: bool = False

    # Resolver filesystem
    TEMP_DIR: Optional[str] = None
    CACHE_DIR: Optional[str] = None
    DISABLE_CACHE: bool = False

    class Config:
        case_sensitive = True

settings = Settings()

# Serverless filesystem is read-only outside /tmp
if os.environ.get("VERCEL"):
    settings.TEMP_DIR = "/tmp"
    settings.DISABLE_CACHE = True
