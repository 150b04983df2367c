"""Request-level failures raised by the ingestion pipeline.

Per-part policy rejections are not errors; only faults that make the whole
request unusable end up here.
"""


class IngestError(Exception):
    """Base exception for upload failures."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ProtocolFault(IngestError):
    """Raised when the multipart stream or a part body cannot be read."""
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class StorageFault(IngestError):
    """Raised when the gallery directory or a file cannot be written."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
