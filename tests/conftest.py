"""Shared test fixtures for the receipt pipeline test suite."""

from collections.abc import Callable
from pathlib import Path

import cv2
import numpy as np
import pytest

from finance_receipts.storage.local import LocalStorage


def _encode(image: np.ndarray, ext: str = ".png") -> bytes:
    ok, buffer = cv2.imencode(ext, image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def encode_image() -> Callable[..., bytes]:
    """Encode a pixel array with OpenCV, PNG unless another extension is given."""
    return _encode


@pytest.fixture
def wide_image() -> np.ndarray:
    """A synthetic BGR photo wider than the default width bound."""
    image = np.full((1500, 2400, 3), 255, dtype=np.uint8)
    image[200:400, 300:2100] = (30, 30, 30)
    return image


@pytest.fixture
def small_image() -> np.ndarray:
    """A synthetic BGR photo already within the width bound."""
    image = np.full((400, 300, 3), 240, dtype=np.uint8)
    image[50:150, 50:250] = (0, 0, 0)
    return image


@pytest.fixture
def wide_png(wide_image: np.ndarray) -> bytes:
    return _encode(wide_image, ".png")


@pytest.fixture
def small_png(small_image: np.ndarray) -> bytes:
    return _encode(small_image, ".png")


@pytest.fixture
def local_storage(tmp_path: Path) -> LocalStorage:
    """Local storage rooted in a temporary directory with a fixed clock."""
    return LocalStorage(
        root=tmp_path / "storage",
        base_url="http://testserver/files",
        secret="test-secret",
        clock=lambda: 1_700_000_000.0,
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
