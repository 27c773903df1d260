"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel

from finance_receipts.extraction.receipt_extractor import ExtractedReceipt


class ParseRequest(BaseModel):
    """Raw OCR text to extract receipt fields from."""

    text: str


class ExtractedReceiptResponse(BaseModel):
    """Response schema for extracted receipt fields.

    ``amount`` is a decimal string to keep cents exact.
    """

    amount: str | None
    amount_minor_units: int | None
    date: str | None
    merchant: str | None
    raw_text: str

    @classmethod
    def from_receipt(cls, receipt: ExtractedReceipt) -> "ExtractedReceiptResponse":
        return cls(
            amount=str(receipt.amount) if receipt.amount is not None else None,
            amount_minor_units=receipt.amount_minor_units,
            date=receipt.date,
            merchant=receipt.merchant,
            raw_text=receipt.raw_text,
        )


class UploadResponse(BaseModel):
    """Response schema for a stored receipt image."""

    url: str
    key: str
    original_size: int
    compressed_size: int
    ocr_text: str | None = None


class RemoveResponse(BaseModel):
    removed: bool


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    storage_backend: str
