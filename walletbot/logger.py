"""Logging utilities for the walletbot package."""

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import settings

# 64-byte values encode to 86-88 base58 chars; public keys stay under 45.
REGEX_SECRET = re.compile(r"[1-9A-HJ-NP-Za-km-z]{80,90}")


class RedactSecretsFilter(logging.Filter):
    """Mask anything shaped like a base58 secret key before it is emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = REGEX_SECRET.sub("[redacted]", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging() -> None:
    """Configure root logging with both file and console handlers."""
    root = logging.getLogger()
    if root.handlers:
        return  # already configured

    Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    redactor = RedactSecretsFilter()

    file_handler = RotatingFileHandler(
        settings.LOG_FILE,
        maxBytes=2_000_000,
        backupCount=5,
    )
    file_handler.setFormatter(formatter)
    file_handler.addFilter(redactor)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(redactor)

    root.setLevel(logging.INFO)
    root.addHandler(file_handler)
    root.addHandler(console_handler)


logger = logging.getLogger("walletbot")
