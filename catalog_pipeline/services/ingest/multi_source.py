"""Multi-file product ingest.

Decodes several uploaded files (xlsx, xls, csv, xml) one after another and
merges them into one row set:

- Files are decoded sequentially on a single worker thread owned by the
  ``parse_all()`` call, so memory peaks at one file and progress is linear.
- A file that fails to decode is marked ``error`` and the remaining files
  are still processed.
- Every row is tagged with its origin file under ``SOURCE_FILE_KEY``.
- The column union is computed in chunks of ``merge_chunk_size`` rows with
  a cooperative yield between chunks. Reserved keys are never columns.

Progress runs from 0 to ``parse_percent_ceiling`` (80) while parsing and
from there to 100 while merging.

Example:
    ingest = MultiSourceIngest(on_progress=print)
    ingest.add_files([SourceFile.from_path("estoque.xlsx")])
    result = await ingest.parse_all()
    mapping = auto_detect_columns(result.columns)
"""
import asyncio
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional

import structlog

from catalog_pipeline.config import ingest_settings
from catalog_pipeline.errors.exceptions import ParserError, PipelineBusyError
from catalog_pipeline.models.imported_file import (
    SOURCE_FILE_KEY,
    ColumnMapping,
    DecodedSheet,
    GradeStatistics,
    ImportedFile,
    IngestResult,
    Row,
    SourceFile,
    detect_file_kind,
    is_reserved_key,
)
from catalog_pipeline.models.progress import IngestPhase, IngestProgress
from catalog_pipeline.parsers import decode as registry_decode
from catalog_pipeline.services.ingest.column_detection import auto_detect_columns
from catalog_pipeline.services.ingest.grade_stats import grade_statistics

logger = structlog.get_logger(__name__)

Decoder = Callable[[bytes, str], DecodedSheet]
ProgressCallback = Callable[[IngestProgress], None]
CompleteCallback = Callable[[IngestResult], None]
ErrorCallback = Callable[[Exception], None]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class MultiSourceIngest:
    """Orchestrates decoding and merging of uploaded product files.
    
    Attributes:
        files: Lifecycle record per added file, in add order
        progress: Live progress record
        rows: Merged rows of the last completed parse
        columns: Merged data columns of the last completed parse
    """
    
    def __init__(
        self,
        decoder: Optional[Decoder] = None,
        merge_chunk_size: Optional[int] = None,
        max_file_size_mb: Optional[int] = None,
        parse_percent_ceiling: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ):
        """Initialize the ingest pipeline.
        
        Args:
            decoder: ``decode(content, file_type) -> DecodedSheet``; defaults
                to the parser registry
            merge_chunk_size: Rows per merge chunk (default from INGEST_MERGE_CHUNK_SIZE)
            max_file_size_mb: Size limit per file (default from INGEST_MAX_FILE_SIZE_MB)
            parse_percent_ceiling: Percent reached after parsing (default 80)
            on_progress: Receives a progress snapshot after every update
            on_complete: Receives the IngestResult on completion
            on_error: Receives unexpected exceptions before they propagate
        """
        self.decoder = decoder or registry_decode
        self.merge_chunk_size = merge_chunk_size or ingest_settings.merge_chunk_size
        self.max_file_size_mb = max_file_size_mb or ingest_settings.max_file_size_mb
        self.parse_percent_ceiling = (
            parse_percent_ceiling or ingest_settings.parse_percent_ceiling
        )
        self.on_progress = on_progress
        self.on_complete = on_complete
        self.on_error = on_error
        
        self.files: List[ImportedFile] = []
        self._sources: List[SourceFile] = []
        self.progress = IngestProgress()
        self.rows: List[Row] = []
        self.columns: List[str] = []
        self._cancelled = False
        self._running = False
        self._log = logger.bind(component="MultiSourceIngest")
    
    @property
    def is_parsing(self) -> bool:
        return self.progress.is_parsing
    
    @property
    def total_rows(self) -> int:
        return len(self.rows)
    
    def add_files(self, sources: Iterable[SourceFile]) -> List[ImportedFile]:
        """Queue files for the next ``parse_all()``.
        
        Returns:
            The pending records created for the new files
        
        Raises:
            PipelineBusyError: If a parse is in progress
        """
        self._ensure_idle()
        added = []
        for source in sources:
            record = ImportedFile(
                name=source.name,
                size_bytes=source.size_bytes,
                kind=detect_file_kind(source.name),
            )
            self._sources.append(source)
            self.files.append(record)
            added.append(record)
        
        self._log.info("files_added", added=len(added), total_files=len(self.files))
        return added
    
    def remove_file(self, index: int) -> ImportedFile:
        """Drop a queued file by position.
        
        Raises:
            IndexError: If there is no file at ``index``
            PipelineBusyError: If a parse is in progress
        """
        self._ensure_idle()
        del self._sources[index]
        record = self.files.pop(index)
        self._log.info("file_removed", file=record.name, total_files=len(self.files))
        return record
    
    def cancel(self) -> None:
        """Request cancellation; takes effect at the next checkpoint."""
        self._cancelled = True
        self._set_progress("cancelled", self.progress.percent, "Cancelled")
        self._log.info("ingest_cancel_requested")
    
    def reset(self) -> None:
        """Drop all files and results, cancelling any parse in progress."""
        if self._running:
            self._cancelled = True
        self.files = []
        self._sources = []
        self.rows = []
        self.columns = []
        self.progress = IngestProgress()
    
    def detect_columns(self) -> ColumnMapping:
        """Auto-detect column roles over the merged columns."""
        return auto_detect_columns(self.columns)
    
    def grade_statistics(self, reference_column: Optional[str]) -> Optional[GradeStatistics]:
        """Variant statistics of the merged rows."""
        return grade_statistics(self.rows, reference_column)
    
    async def parse_all(self) -> IngestResult:
        """Decode every queued file and merge the results.
        
        Returns:
            IngestResult with merged rows, data columns and per-file records;
            empty rows and columns if cancelled
        
        Raises:
            PipelineBusyError: If a parse is already in progress
            Exception: Unexpected failures outside per-file decoding, after
                ``on_error`` was notified and the phase set to ``error``
        """
        if self._running:
            raise PipelineBusyError("Ingest is already running")
        
        self._running = True
        self._cancelled = False
        
        log = self._log.bind(total_files=len(self.files))
        log.info("ingest_started")
        
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="decoder")
        
        try:
            rows = await self._parse_files(executor, log)
            if rows is None:
                log.info("ingest_cancelled", phase="parsing")
                return IngestResult(files=list(self.files))
            
            columns = await self._merge_columns(rows)
            if columns is None:
                log.info("ingest_cancelled", phase="merging")
                return IngestResult(files=list(self.files))
            
            self.rows = rows
            self.columns = columns
            result = IngestResult(rows=rows, columns=columns, files=list(self.files))
            
            self._set_progress("complete", 100, f"{len(rows)} products loaded")
            log.info(
                "ingest_completed",
                rows=len(rows),
                columns=len(columns),
                failed_files=len(result.failed_files),
            )
            
            if self.on_complete:
                self.on_complete(result)
            
            return result
        
        except Exception as e:
            self._set_progress("error", 0, str(e))
            log.error("ingest_failed", error=str(e), exc_info=True)
            if self.on_error:
                self.on_error(e)
            raise
        
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            self._running = False
    
    async def _parse_files(self, executor: ThreadPoolExecutor, log) -> Optional[List[Row]]:
        """Decode files in order; None means the parse was cancelled."""
        loop = asyncio.get_running_loop()
        total_files = len(self.files)
        all_rows: List[Row] = []
        
        for index, (source, record) in enumerate(zip(self._sources, self.files)):
            if self._cancelled:
                return None
            
            record.status = "parsing"
            record.row_count = None
            record.error_message = None
            self._set_progress(
                "parsing",
                _round_half_up(index / total_files * self.parse_percent_ceiling),
                f"Parsing {source.name}...",
                current_file=source.name,
            )
            
            try:
                self._check_size(source)
                sheet = await loop.run_in_executor(
                    executor, self.decoder, source.content, record.kind
                )
            except Exception as e:
                # One bad file never aborts the others
                record.status = "error"
                record.error_message = str(e) or type(e).__name__
                log.warning(
                    "file_parse_failed",
                    file=source.name,
                    kind=record.kind,
                    error=record.error_message,
                )
            else:
                for row in sheet.rows:
                    row[SOURCE_FILE_KEY] = source.name
                all_rows.extend(sheet.rows)
                record.status = "done"
                record.row_count = len(sheet.rows)
                log.info("file_parsed", file=source.name, kind=record.kind, rows=len(sheet.rows))
            
            await asyncio.sleep(0)
        
        if self._cancelled:
            return None
        return all_rows
    
    def _check_size(self, source: SourceFile) -> None:
        if source.size_bytes > self.max_file_size_mb * 1024 * 1024:
            raise ParserError(f"File exceeds the {self.max_file_size_mb} MB limit")
    
    async def _merge_columns(self, rows: List[Row]) -> Optional[List[str]]:
        """Union of data columns in first-seen order; None if cancelled."""
        ceiling = self.parse_percent_ceiling
        self._set_progress("merging", ceiling, "Merging data...")
        
        columns: Dict[str, None] = {}
        total = len(rows)
        
        for start in range(0, total, self.merge_chunk_size):
            if self._cancelled:
                return None
            
            chunk = rows[start:start + self.merge_chunk_size]
            for row in chunk:
                for key in row:
                    if not is_reserved_key(key):
                        columns.setdefault(key, None)
            
            done = start + len(chunk)
            self._set_progress(
                "merging",
                ceiling + _round_half_up(done / total * (99 - ceiling)),
                f"Merging data... {_round_half_up(done / total * 100)}%",
            )
            await asyncio.sleep(0)
        
        if self._cancelled:
            return None
        return list(columns)
    
    def _set_progress(
        self,
        phase: IngestPhase,
        percent: int,
        message: str,
        current_file: Optional[str] = None,
    ) -> None:
        self.progress = IngestProgress(
            phase=phase,
            percent=percent,
            message=message,
            current_file=current_file,
        )
        if self.on_progress:
            self.on_progress(self.progress.model_copy())
    
    def _ensure_idle(self) -> None:
        if self._running:
            raise PipelineBusyError("Files cannot change while ingest is running")
