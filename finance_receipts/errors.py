"""Error kinds raised by the receipt pipeline."""


class ReceiptError(Exception):
    """Base class for receipt pipeline failures."""


class PreconditionError(ReceiptError):
    """Raised when no authenticated identity is available."""


class DecodeError(ReceiptError):
    """Raised when a source image cannot be decoded."""


class EncodeError(ReceiptError):
    """Raised when re-encoding an image produces no output."""


class StorageError(ReceiptError):
    """Raised when the object storage rejects an upload, signing or removal."""


class RecognitionError(ReceiptError):
    """Raised when the OCR engine fails to recognize an image."""
