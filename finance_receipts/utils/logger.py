"""Logging setup shared by the API server, the CLI and library modules.

Library modules only ask for named loggers; handlers are installed once by
whichever entry point starts the process.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at DEBUG/INFO during uploads and decoding.
NOISY_LOGGERS: tuple[str, ...] = ("urllib3", "PIL", "multipart")


def setup_logging(level: str = "INFO") -> None:
    """Install a stdout handler on the root logger.

    Calling it again once a handler exists is a no-op, so both the CLI
    and the server entry point can call it unconditionally.

    Args:
        level: Logging level name. Unknown names fall back to INFO.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, usually called with ``__name__``."""
    return logging.getLogger(name)
