"""Custom exception hierarchy for classification and ingestion errors."""


class CatalogPipelineError(Exception):
    """Base exception for all catalog pipeline errors."""
    
    def __init__(self, message: str, *args, **kwargs):
        """Initialize error with message."""
        self.message = message
        super().__init__(message, *args, **kwargs)


class ParserError(CatalogPipelineError):
    """Raised when a decoder cannot recognize or read a file."""
    pass


class ValidationError(CatalogPipelineError):
    """Raised when caller-supplied input is invalid."""
    pass


class PipelineError(CatalogPipelineError):
    """Raised when a pipeline cannot run or fails as a whole."""
    pass


class PipelineBusyError(PipelineError):
    """Raised when a pipeline instance is started while already running."""
    pass
