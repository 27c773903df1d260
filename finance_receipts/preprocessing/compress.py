"""Receipt photo compression ahead of upload.

Downsamples wide photos to a bounded width and re-encodes everything as
JPEG so that uploads stay small regardless of the camera or source format.
"""

from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np

from finance_receipts.errors import DecodeError, EncodeError
from finance_receipts.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_WIDTH = 1200
DEFAULT_QUALITY = 0.8

OUTPUT_CONTENT_TYPE = "image/jpeg"
OUTPUT_EXTENSION = ".jpg"

ImageSource = bytes | str | Path | np.ndarray

_CHANNELS = (1, 3, 4)


@dataclass
class CompressedImage:
    """A JPEG-encoded receipt image ready for upload."""

    data: bytes
    width: int
    height: int
    original_size: int
    content_type: str = OUTPUT_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def reduction(self) -> float:
        """Fraction of the original byte size removed by compression."""
        if self.original_size <= 0:
            return 0.0
        return 1.0 - self.size / self.original_size


def _check_pixels(pixels: np.ndarray) -> np.ndarray:
    if pixels.size == 0:
        raise DecodeError("Image array is empty")
    if pixels.dtype != np.uint8:
        raise DecodeError(f"Unsupported pixel type {pixels.dtype}, expected uint8")
    if pixels.ndim == 2:
        channels = 1
    elif pixels.ndim == 3:
        channels = pixels.shape[2]
    else:
        channels = 0
    if channels not in _CHANNELS:
        raise DecodeError(f"Unsupported image shape {pixels.shape}")
    if channels == 4:
        try:
            return cv2.cvtColor(pixels, cv2.COLOR_BGRA2BGR)
        except cv2.error as exc:
            raise DecodeError(f"Cannot convert BGRA image: {exc}") from exc
    return pixels


def decode_image(source: ImageSource) -> tuple[np.ndarray, int]:
    """Decode an image source into a pixel array.

    Args:
        source: Encoded image bytes, a path to an image file, or an
            already-decoded 8-bit BGR, BGRA or grayscale array.

    Returns:
        Tuple of (pixels, source_size_in_bytes).

    Raises:
        DecodeError: If the source is empty, unreadable, or not an image.
    """
    if isinstance(source, np.ndarray):
        return _check_pixels(source), source.nbytes

    if isinstance(source, str):
        source = Path(source)

    if isinstance(source, Path):
        try:
            source = source.read_bytes()
        except OSError as exc:
            raise DecodeError(f"Cannot read image file: {exc}") from exc

    if not isinstance(source, (bytes, bytearray, memoryview)):
        raise DecodeError(f"Unsupported image source: {type(source).__name__}")
    if not source:
        raise DecodeError("Image data is empty")

    buffer = np.frombuffer(source, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeError("Data could not be decoded as an image")
    return image, len(source)


def scaled_size(width: int, height: int, max_width: int) -> tuple[int, int]:
    """Compute output dimensions bounded by ``max_width``.

    Images already within the bound keep their size; wider images are
    scaled down preserving aspect ratio.
    """
    if width <= max_width:
        return width, height
    return max_width, max(1, round(height * max_width / width))


def compress(
    image: ImageSource,
    max_width: int = DEFAULT_MAX_WIDTH,
    quality: float = DEFAULT_QUALITY,
) -> CompressedImage:
    """Downsample and re-encode a receipt image as JPEG.

    Args:
        image: Encoded bytes, file path, or decoded array of any format
            OpenCV can read.
        max_width: Maximum output width in pixels.
        quality: Lossy encoding fidelity in (0, 1].

    Returns:
        The compressed image with its dimensions and sizes.

    Raises:
        ValueError: If ``max_width`` or ``quality`` are out of range.
        DecodeError: If the image cannot be decoded.
        EncodeError: If JPEG encoding yields no output.
    """
    if max_width <= 0:
        raise ValueError(f"max_width must be positive, got {max_width}")
    if not 0.0 < quality <= 1.0:
        raise ValueError(f"quality must be in (0, 1], got {quality}")

    pixels, original_size = decode_image(image)
    height, width = pixels.shape[:2]
    out_width, out_height = scaled_size(width, height, max_width)

    if (out_width, out_height) != (width, height):
        try:
            pixels = cv2.resize(
                pixels, (out_width, out_height), interpolation=cv2.INTER_AREA
            )
        except cv2.error as exc:
            raise EncodeError(f"Resizing failed: {exc}") from exc
        logger.debug(
            "Resized receipt image %dx%d -> %dx%d",
            width,
            height,
            out_width,
            out_height,
        )

    jpeg_quality = max(1, min(100, round(quality * 100)))
    try:
        ok, encoded = cv2.imencode(
            OUTPUT_EXTENSION, pixels, [cv2.IMWRITE_JPEG_QUALITY, jpeg_quality]
        )
    except cv2.error as exc:
        raise EncodeError(f"JPEG encoding failed: {exc}") from exc

    if not ok or encoded is None or encoded.size == 0:
        raise EncodeError("JPEG encoding produced no output")

    result = CompressedImage(
        data=encoded.tobytes(),
        width=out_width,
        height=out_height,
        original_size=original_size,
    )
    logger.info(
        "Compressed receipt image: %d -> %d bytes (%.0f%% reduction)",
        result.original_size,
        result.size,
        result.reduction * 100,
    )
    return result
