"""FastAPI application for the receipt pipeline.

Provides REST endpoints for parsing OCR text, scanning receipt photos,
uploading and removing receipt images, serving locally stored receipts,
and health checks.
"""

import shutil
from typing import Annotated

from fastapi import FastAPI, File, Form, Header, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from finance_receipts.errors import RecognitionError, StorageError
from finance_receipts.extraction.receipt_extractor import extract
from finance_receipts.ocr.scanner import ReceiptScanner
from finance_receipts.ocr.tesseract_engine import TesseractEngine
from finance_receipts.storage.base import ObjectStorage, StaticIdentity
from finance_receipts.storage.factory import build_storage
from finance_receipts.storage.local import LocalStorage
from finance_receipts.utils.config import AppConfig, load_config
from finance_receipts.utils.logger import get_logger
from finance_receipts.workflow.uploader import ReceiptUploader

from .schemas import (
    ExtractedReceiptResponse,
    HealthResponse,
    ParseRequest,
    RemoveResponse,
    UploadResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Finance Receipts API",
    description="Compress, recognize and store receipt photos",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/bmp",
    "image/tiff",
    "application/octet-stream",
}


def _get_components() -> tuple[AppConfig, ReceiptScanner, ObjectStorage]:
    """Initialize and return the configured processing components.

    Returns:
        Tuple of (config, receipt_scanner, storage).
    """
    config = load_config()
    engine = TesseractEngine(
        tesseract_cmd=config.ocr.tesseract_cmd,
        default_lang=config.ocr.default_lang,
        psm=config.ocr.psm,
    )
    return config, ReceiptScanner(engine), build_storage(config.storage)


def _check_content_type(file: UploadFile) -> None:
    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    config = load_config()
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
        storage_backend=config.storage.backend,
    )


@app.post("/receipts/parse", response_model=ExtractedReceiptResponse)
async def parse_receipt_text(request: ParseRequest) -> ExtractedReceiptResponse:
    """Extract amount, date and merchant from already recognized text."""
    return ExtractedReceiptResponse.from_receipt(extract(request.text))


@app.post("/receipts/scan", response_model=ExtractedReceiptResponse)
def scan_receipt(
    file: Annotated[UploadFile, File(...)],
) -> ExtractedReceiptResponse:
    """Run OCR on an uploaded receipt photo and extract its fields."""
    _check_content_type(file)
    _, scanner, _ = _get_components()
    content = file.file.read()

    try:
        receipt = scanner.scan(content)
    except RecognitionError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return ExtractedReceiptResponse.from_receipt(receipt)


@app.post("/receipts/upload", response_model=UploadResponse)
def upload_receipt(
    file: Annotated[UploadFile, File(...)],
    ocr_text: Annotated[str | None, Form()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
) -> UploadResponse:
    """Compress and store a receipt photo for the requesting user."""
    _check_content_type(file)
    config, _, storage = _get_components()
    uploader = ReceiptUploader(
        storage,
        StaticIdentity(x_user_id),
        compression=config.compression,
        storage_config=config.storage,
    )

    result = uploader.upload(file.file.read(), ocr_text=ocr_text)
    if result is None:
        raise HTTPException(status_code=500, detail="Receipt upload failed")

    return UploadResponse(
        url=result.url,
        key=result.key,
        original_size=result.original_size,
        compressed_size=result.compressed_size,
        ocr_text=result.ocr_text,
    )


@app.delete("/receipts", response_model=RemoveResponse)
def remove_receipt(
    url: Annotated[str, Query()],
    x_user_id: Annotated[str | None, Header()] = None,
) -> RemoveResponse:
    """Delete a stored receipt by the URL returned at upload time."""
    config, _, storage = _get_components()
    uploader = ReceiptUploader(
        storage, StaticIdentity(x_user_id), storage_config=config.storage
    )
    return RemoveResponse(removed=uploader.remove(url))


@app.get("/files/{key:path}")
def download_receipt(
    key: str,
    expires: Annotated[int, Query()],
    token: Annotated[str, Query()],
) -> Response:
    """Serve a receipt from local storage through a signed URL."""
    _, _, storage = _get_components()
    if not isinstance(storage, LocalStorage):
        raise HTTPException(status_code=404, detail="Not found")

    if not storage.verify(key, expires, token):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")

    try:
        content = storage.read(key)
    except StorageError as exc:
        raise HTTPException(status_code=404, detail="Not found") from exc

    return Response(content=content, media_type="image/jpeg")
