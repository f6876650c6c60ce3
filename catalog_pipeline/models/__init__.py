"""Pydantic validation models."""

from catalog_pipeline.models.rules import (
    MatchType,
    JoinOperator,
    AttributeKind,
    Condition,
    Rule,
    CustomAttribute,
)
from catalog_pipeline.models.classification import (
    ProductInput,
    ClassificationResult,
    ClassifiedItem,
    BatchStats,
)
from catalog_pipeline.models.progress import (
    BatchPhase,
    BatchProgress,
    IngestPhase,
    IngestProgress,
)
from catalog_pipeline.models.imported_file import (
    Row,
    RESERVED_KEY_PREFIX,
    SOURCE_FILE_KEY,
    FileKind,
    FileStatus,
    is_reserved_key,
    detect_file_kind,
    SourceFile,
    ImportedFile,
    ColumnMapping,
    GradeStatistics,
    DecodedSheet,
    IngestResult,
)

__all__ = [
    # Rule models
    "MatchType",
    "JoinOperator",
    "AttributeKind",
    "Condition",
    "Rule",
    "CustomAttribute",
    # Classification models
    "ProductInput",
    "ClassificationResult",
    "ClassifiedItem",
    "BatchStats",
    # Progress models
    "BatchPhase",
    "BatchProgress",
    "IngestPhase",
    "IngestProgress",
    # Ingest models
    "Row",
    "RESERVED_KEY_PREFIX",
    "SOURCE_FILE_KEY",
    "FileKind",
    "FileStatus",
    "is_reserved_key",
    "detect_file_kind",
    "SourceFile",
    "ImportedFile",
    "ColumnMapping",
    "GradeStatistics",
    "DecodedSheet",
    "IngestResult",
]
