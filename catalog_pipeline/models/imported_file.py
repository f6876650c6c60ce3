"""Models for uploaded files, decoded rows and ingest results.

Rows are plain ``dict`` objects keyed by the column header found in the
source file. Keys starting with ``__`` are reserved for pipeline metadata
(currently only the origin file name under ``SOURCE_FILE_KEY``) and are
never reported as data columns.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


Row = Dict[str, Any]

RESERVED_KEY_PREFIX = "__"
SOURCE_FILE_KEY = "__source_file"

FileKind = Literal["xlsx", "xls", "csv", "xml"]
FileStatus = Literal["pending", "parsing", "done", "error"]

_KNOWN_KINDS = ("xlsx", "xls", "csv", "xml")


def is_reserved_key(key: Any) -> bool:
    """True for pipeline metadata keys that are not data columns."""
    return isinstance(key, str) and key.startswith(RESERVED_KEY_PREFIX)


def detect_file_kind(filename: str) -> str:
    """Detect the decoder kind from a file name extension.
    
    Unknown extensions default to ``xlsx``.
    """
    extension = Path(filename).suffix.lower().lstrip(".")
    return extension if extension in _KNOWN_KINDS else "xlsx"


class SourceFile(BaseModel):
    """Raw bytes of one uploaded file."""
    
    name: str
    content: bytes = Field(repr=False)
    
    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "SourceFile":
        """Read a file from disk."""
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes())
    
    @property
    def size_bytes(self) -> int:
        return len(self.content)


class ImportedFile(BaseModel):
    """Lifecycle record of one uploaded file: pending → parsing → done|error."""
    
    model_config = ConfigDict(validate_assignment=True)
    
    name: str
    size_bytes: int = Field(ge=0)
    kind: FileKind
    status: FileStatus = "pending"
    row_count: Optional[int] = Field(default=None, ge=0)
    error_message: Optional[str] = None


class ColumnMapping(BaseModel):
    """Header name chosen for each semantic column role."""
    
    name: Optional[str] = None
    code: Optional[str] = None
    reference: Optional[str] = None
    price: Optional[str] = None
    cost: Optional[str] = None
    stock: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None


class GradeStatistics(BaseModel):
    """Variant (grade) statistics grouped by a reference column."""
    
    model_config = ConfigDict(populate_by_name=True)
    
    total_rows: int = Field(serialization_alias="totalLinhas", ge=0)
    unique_products: int = Field(serialization_alias="produtosUnicos", ge=0)
    products_with_variants: int = Field(serialization_alias="produtosComVariacao", ge=0)
    mean_variants: float = Field(serialization_alias="mediaVariacoes", ge=0)


@dataclass
class DecodedSheet:
    """Rows and header order produced by a decoder."""
    rows: List[Row] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)


@dataclass
class IngestResult:
    """Merged rows of every successfully parsed file."""
    rows: List[Row] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    files: List[ImportedFile] = field(default_factory=list)
    
    @property
    def failed_files(self) -> List[ImportedFile]:
        return [f for f in self.files if f.status == "error"]
