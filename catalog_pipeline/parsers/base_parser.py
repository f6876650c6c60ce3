"""Abstract decoder interface for pluggable file formats."""
from abc import ABC, abstractmethod
from typing import Tuple

from catalog_pipeline.models.imported_file import DecodedSheet


class DecoderInterface(ABC):
    """Abstract base class for all byte → rows decoders.
    
    This interface enables pluggable decoder architecture where new file
    formats can be added without modifying the ingest pipeline.
    
    Implementations must provide:
    - decode(): Turn raw file bytes into named-field rows
    - supported_types(): File kinds the decoder accepts
    - get_parser_name(): Return unique decoder identifier
    
    Decoders are synchronous and hold no state between calls, so the ingest
    pipeline can run them on a worker thread.
    """
    
    @abstractmethod
    def decode(self, content: bytes, file_type: str) -> DecodedSheet:
        """Decode file bytes into rows of named fields.
        
        Args:
            content: Raw file bytes
            file_type: One of ``supported_types()``
        
        Returns:
            DecodedSheet with rows in file order and header order
        
        Raises:
            ParserError: If the file structure cannot be recognized or read
        """
        pass
    
    @abstractmethod
    def supported_types(self) -> Tuple[str, ...]:
        """Return the file kinds this decoder accepts (e.g. ``("xml",)``)."""
        pass
    
    @abstractmethod
    def get_parser_name(self) -> str:
        """Return unique identifier for this decoder type.
        
        Returns:
            Decoder identifier string (e.g., "spreadsheet", "xml")
        """
        pass
