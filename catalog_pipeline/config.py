"""Configuration management using pydantic-settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
import logging
import structlog


class BatchSettings(BaseSettings):
    """Batch classification configuration.
    
    All settings prefixed with BATCH_ (e.g., BATCH_SIZE=1000)
    """
    
    batch_size: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Items per macro-batch (one sink call per macro-batch)"
    )
    micro_batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Items classified between two cooperative yields"
    )
    use_worker: bool = Field(
        default=False,
        description="Classify micro-batches on a dedicated worker thread"
    )
    
    model_config = SettingsConfigDict(
        env_prefix="BATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class IngestSettings(BaseSettings):
    """Multi-file ingest configuration.
    
    All settings prefixed with INGEST_ (e.g., INGEST_MERGE_CHUNK_SIZE=10000)
    """
    
    merge_chunk_size: int = Field(
        default=5000,
        ge=1,
        description="Rows scanned per chunk while merging column sets"
    )
    max_file_size_mb: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Files above this size are rejected without decoding (MB)"
    )
    parse_percent_ceiling: int = Field(
        default=80,
        ge=1,
        le=99,
        description="Overall percent reached when all files are parsed; the rest is merge"
    )
    
    model_config = SettingsConfigDict(
        env_prefix="INGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    log_level: str = "INFO"
    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instances
settings = Settings()
batch_settings = BatchSettings()
ingest_settings = IngestSettings()


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON logging."""
    logging.basicConfig(format="%(message)s", level=log_level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# Initialize logging on module import (after settings are loaded)
try:
    configure_logging(settings.log_level)
except ValueError:
    # Unknown level name in LOG_LEVEL
    configure_logging("INFO")
