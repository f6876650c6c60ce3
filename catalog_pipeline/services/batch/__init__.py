"""Batch classification service.

Key Components:
    - BatchClassifier: Chunked, cancellable driver around RuleEngine
    - format_eta: Human-readable remaining-time text
"""
from catalog_pipeline.services.batch.batch_classifier import (
    BatchClassifier,
    BatchSink,
    compute_stats,
    estimate_remaining,
    format_eta,
)

__all__ = [
    "BatchClassifier",
    "BatchSink",
    "compute_stats",
    "estimate_remaining",
    "format_eta",
]
