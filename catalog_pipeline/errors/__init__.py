"""Error handling module."""
from catalog_pipeline.errors.exceptions import (
    CatalogPipelineError,
    ParserError,
    ValidationError,
    PipelineError,
    PipelineBusyError,
)

__all__ = [
    "CatalogPipelineError",
    "ParserError",
    "ValidationError",
    "PipelineError",
    "PipelineBusyError",
]
