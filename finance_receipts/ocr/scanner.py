"""Receipt scanning: OCR followed by field extraction.

The scanner owns a progress indicator for UI feedback. Only the scan in
flight writes it, and it returns to idle whether the scan succeeds or not.
"""

from dataclasses import dataclass

import numpy as np

from finance_receipts.errors import DecodeError, RecognitionError
from finance_receipts.extraction.receipt_extractor import (
    ExtractedReceipt,
    ReceiptExtractor,
)
from finance_receipts.utils.logger import get_logger

from .tesseract_engine import TesseractEngine

logger = get_logger(__name__)


@dataclass
class ScanProgress:
    """Whether a scan is running and how far recognition has got."""

    processing: bool = False
    percent: int = 0

    def begin(self) -> None:
        self.processing = True
        self.percent = 0

    def update(self, fraction: float) -> None:
        self.percent = max(0, min(100, round(fraction * 100)))

    def reset(self) -> None:
        self.processing = False
        self.percent = 0


class ReceiptScanner:
    """Recognize a receipt photo and extract its fields.

    Args:
        engine: OCR engine used for recognition.
        extractor: Field extractor. Defaults to the standard rules.
        lang: OCR language; ``None`` uses the engine default.
        progress: Progress indicator to update during scans.
    """

    def __init__(
        self,
        engine: TesseractEngine,
        extractor: ReceiptExtractor | None = None,
        lang: str | None = None,
        progress: ScanProgress | None = None,
    ) -> None:
        self.engine = engine
        self.extractor = extractor or ReceiptExtractor()
        self.lang = lang
        self.progress = progress or ScanProgress()

    def scan(self, image: bytes | np.ndarray) -> ExtractedReceipt:
        """Run OCR on the image and extract amount, date and merchant.

        Raises:
            RecognitionError: If the image cannot be decoded or recognized.
        """
        self.progress.begin()
        try:
            result = self.engine.recognize(
                image, lang=self.lang, on_progress=self.progress.update
            )
        except (DecodeError, RecognitionError) as exc:
            logger.error("Receipt scan failed: %s", exc)
            raise RecognitionError("Could not process receipt") from exc
        finally:
            self.progress.reset()

        return self.extractor.extract(result.text)
