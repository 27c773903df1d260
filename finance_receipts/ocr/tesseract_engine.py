"""Tesseract OCR engine wrapper for receipt photos.

Recognizes the full text of a receipt image and reports coarse progress
through an optional callback, since pytesseract runs Tesseract as a
blocking subprocess.
"""

import io
from collections.abc import Callable
from dataclasses import dataclass

import cv2
import numpy as np
import pytesseract
from PIL import Image, UnidentifiedImageError
from pytesseract import TesseractError, TesseractNotFoundError

from finance_receipts.errors import DecodeError, RecognitionError
from finance_receipts.utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass
class OCRResult:
    """Recognized text of a receipt image."""

    text: str
    language: str
    confidence: float
    word_count: int


def _to_pil(image: bytes | np.ndarray) -> Image.Image:
    if isinstance(image, np.ndarray):
        if image.ndim == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        return Image.fromarray(image)
    try:
        pil_image = Image.open(io.BytesIO(image))
        pil_image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise DecodeError(f"Cannot decode image for OCR: {exc}") from exc
    return pil_image


class TesseractEngine:
    """Wrapper around Tesseract OCR for receipt text recognition.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
        psm: Tesseract page segmentation mode.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "por",
        psm: int = 3,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm

    def recognize(
        self,
        image: bytes | np.ndarray,
        lang: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> OCRResult:
        """Recognize the text of a receipt image.

        Args:
            image: Encoded image bytes or a decoded BGR/grayscale array.
            lang: OCR language code. Defaults to the engine default.
            on_progress: Receives completion fractions in [0, 1].

        Returns:
            OCRResult with the raw text and mean word confidence.

        Raises:
            DecodeError: If the image bytes cannot be decoded.
            RecognitionError: If Tesseract fails or is not installed.
        """
        lang = lang or self.default_lang
        config = f"--psm {self.psm}"
        report = on_progress or (lambda fraction: None)

        report(0.0)
        pil_image = _to_pil(image)

        try:
            text = pytesseract.image_to_string(pil_image, lang=lang, config=config)
            report(0.5)
            data = pytesseract.image_to_data(
                pil_image,
                lang=lang,
                config=config,
                output_type=pytesseract.Output.DICT,
            )
        except (TesseractError, TesseractNotFoundError) as exc:
            raise RecognitionError(f"Tesseract failed: {exc}") from exc

        confidences = [
            float(conf)
            for conf, word in zip(data["conf"], data["text"])
            if float(conf) > 0 and word.strip()
        ]
        avg_conf = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0
        report(1.0)

        logger.info(
            "OCR recognized %d words (%s) with average confidence %.2f",
            len(confidences),
            lang,
            avg_conf,
        )
        return OCRResult(
            text=text,
            language=lang,
            confidence=avg_conf,
            word_count=len(confidences),
        )
