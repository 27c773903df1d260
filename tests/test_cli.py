"""Tests for the command-line interface."""

import io
import json
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from finance_receipts.cli import main, parse_text, summarize_ledger
from finance_receipts.errors import RecognitionError
from finance_receipts.extraction.receipt_extractor import extract

RECEIPT_TEXT = "SUPERMERCADO BOM PRECO\nCNPJ 00.000.000/0001-00\n15/01/2024\nTOTAL R$ 87,90\n"

LEDGER = {
    "contas": [
        {
            "id": "a1",
            "nome": "Conta Corrente",
            "tipo": "Conta Corrente",
            "instituicao": "Banco",
            "saldo_inicial": 1000,
        }
    ],
    "lancamentos": [
        {
            "id": "l1",
            "data": "2024-01-05",
            "descricao": "Salário",
            "categoria_id": "c1",
            "conta_id": "a1",
            "valor": 5000,
            "tipo": "Receita",
            "mes": 1,
            "ano": 2024,
        },
        {
            "id": "l2",
            "data": "2024-01-15",
            "descricao": "Supermercado",
            "categoria_id": "c4",
            "conta_id": "a1",
            "valor": "-87.90",
            "tipo": "Despesa",
            "mes": 1,
            "ano": 2024,
        },
        {
            "id": "l3",
            "data": "2024-02-01",
            "descricao": "Aluguel",
            "categoria_id": "c5",
            "conta_id": "a1",
            "valor": -1200,
            "tipo": "Despesa",
            "mes": 2,
            "ano": 2024,
        },
    ],
}


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a config that stores receipts under the temporary directory."""
    path = tmp_path / "config.yaml"
    config = {
        "storage": {
            "backend": "local",
            "local_root": str(tmp_path / "storage"),
            "public_base_url": "http://localhost:8000/files",
        },
        "log_level": "WARNING",
    }
    path.write_text(yaml.safe_dump(config))
    return path


@pytest.fixture
def ledger_file(tmp_path: Path) -> Path:
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps(LEDGER))
    return path


def _run(capsys: pytest.CaptureFixture, argv: list[str]) -> dict:
    main(argv)
    return json.loads(capsys.readouterr().out)


class TestParseCommand:
    """Tests for the parse command."""

    def test_parse_file(
        self, tmp_path: Path, config_file: Path, capsys: pytest.CaptureFixture
    ) -> None:
        text_file = tmp_path / "receipt.txt"
        text_file.write_text(RECEIPT_TEXT)

        data = _run(capsys, ["--config", str(config_file), "parse", str(text_file)])

        assert data["amount"] == "87.90"
        assert data["date"] == "2024-01-15"
        assert data["merchant"] == "SUPERMERCADO BOM PRECO"
        assert data["raw_text"] == RECEIPT_TEXT

    def test_parse_stdin(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO("Valor: 12,50"))
        result = parse_text(None)
        assert result["amount"] == "12.50"
        assert result["merchant"] == "Valor: 12,50"

    def test_missing_file_exits(self, tmp_path: Path, config_file: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(config_file), "parse", str(tmp_path / "none.txt")])
        assert exc_info.value.code == 1


class TestScanCommand:
    """Tests for the scan command."""

    @patch("finance_receipts.cli.ReceiptScanner")
    def test_scan_writes_output(
        self,
        mock_scanner_cls: MagicMock,
        tmp_path: Path,
        config_file: Path,
        small_png: bytes,
    ) -> None:
        mock_scanner_cls.return_value.scan.return_value = extract(RECEIPT_TEXT)
        image = tmp_path / "receipt.png"
        image.write_bytes(small_png)
        output = tmp_path / "out" / "receipt.json"

        main(["--config", str(config_file), "scan", str(image), "-o", str(output)])

        data = json.loads(output.read_text())
        assert data["filename"] == "receipt.png"
        assert data["amount"] == "87.90"
        mock_scanner_cls.return_value.scan.assert_called_once_with(small_png)

    @patch("finance_receipts.cli.ReceiptScanner")
    def test_scan_failure_exits(
        self,
        mock_scanner_cls: MagicMock,
        tmp_path: Path,
        config_file: Path,
        small_png: bytes,
    ) -> None:
        mock_scanner_cls.return_value.scan.side_effect = RecognitionError(
            "Could not process receipt"
        )
        image = tmp_path / "receipt.png"
        image.write_bytes(small_png)

        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(config_file), "scan", str(image)])
        assert exc_info.value.code == 1


class TestCompressCommand:
    """Tests for the compress command."""

    def test_compress_to_file(
        self,
        tmp_path: Path,
        config_file: Path,
        wide_png: bytes,
        capsys: pytest.CaptureFixture,
    ) -> None:
        image = tmp_path / "wide.png"
        image.write_bytes(wide_png)
        output = tmp_path / "wide.jpg"

        data = _run(
            capsys,
            ["--config", str(config_file), "compress", str(image), "-o", str(output)],
        )

        assert (data["width"], data["height"]) == (1200, 750)
        assert data["original_size"] == len(wide_png)
        assert output.read_bytes()[:3] == b"\xff\xd8\xff"

    def test_compress_options(
        self,
        tmp_path: Path,
        config_file: Path,
        wide_png: bytes,
        capsys: pytest.CaptureFixture,
    ) -> None:
        image = tmp_path / "wide.png"
        image.write_bytes(wide_png)

        data = _run(
            capsys,
            [
                "--config",
                str(config_file),
                "compress",
                str(image),
                "-o",
                str(tmp_path / "small.jpg"),
                "--max-width",
                "480",
                "--quality",
                "0.5",
            ],
        )
        assert (data["width"], data["height"]) == (480, 300)

    def test_compress_invalid_image_exits(
        self, tmp_path: Path, config_file: Path
    ) -> None:
        image = tmp_path / "broken.png"
        image.write_bytes(b"broken")
        with pytest.raises(SystemExit) as exc_info:
            main(
                [
                    "--config",
                    str(config_file),
                    "compress",
                    str(image),
                    "-o",
                    str(tmp_path / "x.jpg"),
                ]
            )
        assert exc_info.value.code == 1


class TestUploadCommand:
    """Tests for the upload command."""

    def test_upload_to_local_storage(
        self,
        tmp_path: Path,
        config_file: Path,
        small_png: bytes,
        capsys: pytest.CaptureFixture,
    ) -> None:
        image = tmp_path / "receipt.png"
        image.write_bytes(small_png)
        ocr_file = tmp_path / "ocr.txt"
        ocr_file.write_text(RECEIPT_TEXT)

        data = _run(
            capsys,
            [
                "--config",
                str(config_file),
                "upload",
                str(image),
                "--user",
                "user-7",
                "--ocr-text",
                str(ocr_file),
            ],
        )

        assert data["key"].startswith("user-7/")
        assert data["url"].startswith("http://localhost:8000/files/user-7/")
        assert data["ocr_text"] == RECEIPT_TEXT
        stored = tmp_path / "storage" / "comprovantes" / data["key"]
        assert stored.stat().st_size == data["compressed_size"]

    def test_upload_failure_exits(self, tmp_path: Path, config_file: Path) -> None:
        image = tmp_path / "broken.png"
        image.write_bytes(b"broken")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(config_file), "upload", str(image), "--user", "u"])
        assert exc_info.value.code == 1


class TestSummaryCommand:
    """Tests for the summary command."""

    def test_monthly_summary(self, ledger_file: Path) -> None:
        result = summarize_ledger(ledger_file, 2024, month=1)
        assert result["total_income"] == Decimal("5000")
        assert result["total_expenses"] == Decimal("-87.90")
        assert result["balance"] == Decimal("4912.10")
        assert result["accounts"] == {"Conta Corrente": Decimal("4712.10")}

    def test_annual_summary_json(
        self, ledger_file: Path, config_file: Path, capsys: pytest.CaptureFixture
    ) -> None:
        data = _run(
            capsys,
            ["--config", str(config_file), "summary", str(ledger_file), "--year", "2024"],
        )
        assert Decimal(data["total_expenses"]) == Decimal("-1287.90")
        assert Decimal(data["balance"]) == Decimal("3712.10")
        assert len(data["months"]) == 12
        assert Decimal(data["months"][1]["balance"]) == Decimal("-1200")


class TestMain:
    """Tests for argument handling."""

    def test_no_command_prints_help(
        self, config_file: Path, capsys: pytest.CaptureFixture
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(config_file)])
        assert exc_info.value.code == 0
        assert "usage" in capsys.readouterr().out.lower()
