"""Application entry point for the Finance Receipts API server."""

import argparse
from pathlib import Path

import uvicorn

from finance_receipts.api.app import app
from finance_receipts.utils.config import load_config
from finance_receipts.utils.logger import setup_logging


def main(argv: list[str] | None = None) -> None:
    """Start the FastAPI application server."""
    parser = argparse.ArgumentParser(description="Finance Receipts API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
