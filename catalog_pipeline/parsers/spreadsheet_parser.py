"""Spreadsheet decoder for xlsx, xls and csv files.

Reads the first worksheet (or the whole CSV) with pandas and returns one
dict per data row keyed by the header cells. Empty cells become ``""``;
numeric and date cells keep their native types.
"""
import io
from typing import Tuple

import pandas as pd
import structlog

from catalog_pipeline.parsers.base_parser import DecoderInterface
from catalog_pipeline.models.imported_file import DecodedSheet
from catalog_pipeline.errors.exceptions import ParserError

logger = structlog.get_logger(__name__)


class SpreadsheetParser(DecoderInterface):
    """Decoder for tabular files using pandas.
    
    Features:
    - openpyxl engine for xlsx, xlrd for legacy xls
    - CSV delimiter sniffing (comma, semicolon, tab...)
    - UTF-8 with latin-1 fallback for CSV
    - Header order preserved in ``columns``
    """
    
    EXCEL_ENGINES = {
        "xlsx": "openpyxl",
        "xls": "xlrd",
    }
    
    def get_parser_name(self) -> str:
        """Return parser identifier."""
        return "spreadsheet"
    
    def supported_types(self) -> Tuple[str, ...]:
        return ("xlsx", "xls", "csv")
    
    def decode(self, content: bytes, file_type: str) -> DecodedSheet:
        """Decode spreadsheet bytes into rows.
        
        Args:
            content: Raw file bytes
            file_type: ``xlsx``, ``xls`` or ``csv``
        
        Returns:
            DecodedSheet with one row per data line
        
        Raises:
            ParserError: If the file is empty, corrupt or of an unsupported kind
        """
        if file_type not in self.supported_types():
            raise ParserError(f"Unsupported spreadsheet type: {file_type}")
        
        log = logger.bind(file_type=file_type, size_bytes=len(content))
        
        try:
            if file_type == "csv":
                df = self._read_csv(content, log)
            else:
                df = pd.read_excel(
                    io.BytesIO(content),
                    sheet_name=0,
                    engine=self.EXCEL_ENGINES[file_type],
                )
        except pd.errors.EmptyDataError:
            raise ParserError("Spreadsheet is empty or contains no data")
        except pd.errors.ParserError as e:
            raise ParserError(f"CSV parsing error: {e}") from e
        except Exception as e:
            if isinstance(e, ParserError):
                raise
            raise ParserError(f"Unexpected error during spreadsheet parsing: {e}") from e
        
        sheet = self._to_sheet(df)
        log.debug("spreadsheet_decoded", rows=len(sheet.rows), columns=len(sheet.columns))
        return sheet
    
    def _read_csv(self, content: bytes, log) -> pd.DataFrame:
        """Read CSV bytes, sniffing the delimiter."""
        options = dict(
            sep=None,
            engine="python",
            keep_default_na=False,
        )
        try:
            return pd.read_csv(io.BytesIO(content), encoding="utf-8-sig", **options)
        except UnicodeDecodeError as e:
            # Spreadsheet tools on Windows often export latin-1
            log.warning("utf8_decode_failed_trying_latin1", error=str(e))
            return pd.read_csv(io.BytesIO(content), encoding="latin-1", **options)
    
    @staticmethod
    def _to_sheet(df: pd.DataFrame) -> DecodedSheet:
        columns = [str(c) for c in df.columns]
        df.columns = columns
        df = df.astype(object).where(pd.notna(df), "")
        return DecodedSheet(rows=df.to_dict(orient="records"), columns=columns)
