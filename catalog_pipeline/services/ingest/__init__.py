"""Multi-file ingest: decoding, column merge, column roles and grade stats."""
from catalog_pipeline.services.ingest.column_detection import (
    COLUMN_PATTERNS,
    auto_detect_columns,
    build_products,
)
from catalog_pipeline.services.ingest.grade_stats import grade_statistics
from catalog_pipeline.services.ingest.multi_source import MultiSourceIngest

__all__ = [
    "COLUMN_PATTERNS",
    "auto_detect_columns",
    "build_products",
    "grade_statistics",
    "MultiSourceIngest",
]
