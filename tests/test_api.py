"""Tests for the FastAPI REST endpoints."""

from pathlib import Path
from unittest.mock import MagicMock, patch
from urllib.parse import urlsplit

import pytest
from fastapi.testclient import TestClient

from finance_receipts.api.app import app
from finance_receipts.errors import RecognitionError
from finance_receipts.extraction.receipt_extractor import extract
from finance_receipts.storage.local import LocalStorage
from finance_receipts.utils.config import AppConfig


@pytest.fixture
def client() -> TestClient:
    """Create a FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def scanner() -> MagicMock:
    mock_scanner = MagicMock()
    mock_scanner.scan.return_value = extract("PADARIA PAO BOM\nTOTAL R$ 23,40\n10/01/2025")
    return mock_scanner


@pytest.fixture
def components(scanner: MagicMock, tmp_path: Path):
    """Patch the component factory with a mock scanner and local storage."""
    storage = LocalStorage(
        root=tmp_path / "storage",
        base_url="http://testserver/files",
        secret="api-secret",
    )
    with patch("finance_receipts.api.app._get_components") as mock_components:
        mock_components.return_value = (AppConfig(), scanner, storage)
        yield mock_components


def _path_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.path}?{parts.query}"


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert isinstance(data["tesseract_available"], bool)
        assert data["storage_backend"] in ("local", "supabase")


class TestParseEndpoint:
    """Tests for the /receipts/parse endpoint."""

    def test_parse_text(self, client: TestClient) -> None:
        response = client.post(
            "/receipts/parse",
            json={"text": "MERCADO CENTRAL\nTOTAL R$ 1.234,56\n05/03/2024"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["amount"] == "1234.56"
        assert data["amount_minor_units"] == 123456
        assert data["date"] == "2024-03-05"
        assert data["merchant"] == "MERCADO CENTRAL"

    def test_parse_empty_text(self, client: TestClient) -> None:
        response = client.post("/receipts/parse", json={"text": ""})
        assert response.status_code == 200
        data = response.json()
        assert data["amount"] is None
        assert data["amount_minor_units"] is None
        assert data["date"] is None
        assert data["merchant"] is None
        assert data["raw_text"] == ""

    def test_parse_requires_text(self, client: TestClient) -> None:
        response = client.post("/receipts/parse", json={})
        assert response.status_code == 422


class TestScanEndpoint:
    """Tests for the /receipts/scan endpoint."""

    def test_scan_success(
        self,
        client: TestClient,
        components: MagicMock,
        scanner: MagicMock,
        small_png: bytes,
    ) -> None:
        response = client.post(
            "/receipts/scan",
            files={"file": ("receipt.png", small_png, "image/png")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["amount"] == "23.40"
        assert data["date"] == "2025-01-10"
        assert data["merchant"] == "PADARIA PAO BOM"
        scanner.scan.assert_called_once_with(small_png)

    def test_scan_recognition_error(
        self,
        client: TestClient,
        components: MagicMock,
        scanner: MagicMock,
        small_png: bytes,
    ) -> None:
        scanner.scan.side_effect = RecognitionError("Could not process receipt")
        response = client.post(
            "/receipts/scan",
            files={"file": ("receipt.png", small_png, "image/png")},
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Could not process receipt"

    def test_scan_unsupported_file_type(self, client: TestClient) -> None:
        response = client.post(
            "/receipts/scan",
            files={"file": ("notes.txt", b"plain text", "text/plain")},
        )
        assert response.status_code == 400


class TestUploadEndpoints:
    """Tests for receipt upload, download and removal."""

    def _upload(self, client: TestClient, image: bytes, user: str | None = "user-1"):
        headers = {"x-user-id": user} if user else {}
        return client.post(
            "/receipts/upload",
            files={"file": ("receipt.png", image, "image/png")},
            data={"ocr_text": "TOTAL R$ 23,40"},
            headers=headers,
        )

    def test_upload_success(
        self, client: TestClient, components: MagicMock, wide_png: bytes
    ) -> None:
        response = self._upload(client, wide_png)
        assert response.status_code == 200
        data = response.json()
        assert data["key"].startswith("user-1/")
        assert data["key"].endswith(".jpg")
        assert data["url"].startswith("http://testserver/files/user-1/")
        assert data["original_size"] == len(wide_png)
        assert data["compressed_size"] > 0
        assert data["ocr_text"] == "TOTAL R$ 23,40"

    def test_upload_without_user_fails(
        self, client: TestClient, components: MagicMock, small_png: bytes
    ) -> None:
        response = self._upload(client, small_png, user=None)
        assert response.status_code == 500
        assert response.json()["detail"] == "Receipt upload failed"

    def test_upload_undecodable_image_fails(
        self, client: TestClient, components: MagicMock
    ) -> None:
        response = self._upload(client, b"not an image at all")
        assert response.status_code == 500

    def test_signed_url_serves_image(
        self, client: TestClient, components: MagicMock, small_png: bytes
    ) -> None:
        url = self._upload(client, small_png).json()["url"]

        response = client.get(_path_of(url))
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.content[:3] == b"\xff\xd8\xff"

    def test_tampered_token_rejected(
        self, client: TestClient, components: MagicMock, small_png: bytes
    ) -> None:
        key = self._upload(client, small_png).json()["key"]
        response = client.get(
            f"/files/{key}", params={"expires": 4_000_000_000, "token": "0" * 64}
        )
        assert response.status_code == 403

    def test_download_requires_signature(
        self, client: TestClient, components: MagicMock
    ) -> None:
        response = client.get("/files/user-1/1.jpg")
        assert response.status_code == 422

    def test_download_from_remote_backend_not_found(
        self, client: TestClient, scanner: MagicMock
    ) -> None:
        with patch("finance_receipts.api.app._get_components") as mock_components:
            mock_components.return_value = (AppConfig(), scanner, MagicMock())
            response = client.get(
                "/files/user-1/1.jpg", params={"expires": 1, "token": "x"}
            )
        assert response.status_code == 404

    def test_remove_then_download_not_found(
        self, client: TestClient, components: MagicMock, small_png: bytes
    ) -> None:
        url = self._upload(client, small_png).json()["url"]

        response = client.delete(
            "/receipts", params={"url": url}, headers={"x-user-id": "user-1"}
        )
        assert response.status_code == 200
        assert response.json() == {"removed": True}

        assert client.get(_path_of(url)).status_code == 404

    def test_remove_missing_receipt(
        self, client: TestClient, components: MagicMock
    ) -> None:
        response = client.delete(
            "/receipts",
            params={"url": "http://testserver/files/user-1/1.jpg"},
            headers={"x-user-id": "user-1"},
        )
        assert response.status_code == 200
        assert response.json() == {"removed": False}
