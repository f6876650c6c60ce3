"""Progress records owned by the pipeline drivers.

Each driver owns exactly one mutable record and mutates it only between
cooperative yields. Callbacks receive a copy so that a slow consumer never
observes a record changing under it.
"""
from typing import Literal, Optional

from pydantic import BaseModel, Field


BatchPhase = Literal[
    "idle", "parsing", "classifying", "merging", "saving",
    "complete", "error", "cancelled",
]
IngestPhase = Literal["idle", "parsing", "merging", "complete", "error", "cancelled"]


class BatchProgress(BaseModel):
    """Progress of a batch classification run."""
    
    phase: BatchPhase = "idle"
    processed: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    percent: int = Field(default=0, ge=0, le=100)
    batches_complete: int = Field(default=0, ge=0)
    total_batches: int = Field(default=0, ge=0)
    eta_text: Optional[str] = Field(
        default=None,
        description="Estimated time remaining, e.g. '42s', '7min', '2h 5min'"
    )
    items_per_second: int = Field(default=0, ge=0)
    current_batch_percent: int = Field(default=0, ge=0, le=100)
    
    @property
    def is_processing(self) -> bool:
        """True while the run is still producing results."""
        return self.phase in ("parsing", "classifying", "saving")


class IngestProgress(BaseModel):
    """Progress of a multi-file parse."""
    
    phase: IngestPhase = "idle"
    percent: int = Field(default=0, ge=0, le=100)
    message: str = ""
    current_file: Optional[str] = None
    
    @property
    def is_parsing(self) -> bool:
        """True while files are being decoded or merged."""
        return self.phase in ("parsing", "merging")
