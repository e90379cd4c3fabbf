"""
Logging utilities.

WHAT: Centralized logging configuration with credential masking
WHY: Negotiation runs are long-lived and every chat call carries a participant's access token
HOW: Python logging with file and console handlers, both behind a token-masking filter
"""

import logging
import re
import sys
from pathlib import Path

from ..core.config import settings

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# "Bearer <token>" and "access_token=<token>" / "accessToken: <token>"
_TOKEN_PATTERN = re.compile(
    r'(?P<prefix>Bearer\s+|access_?token["\']?\s*[:=]\s*["\']?)(?P<token>[^\s"\',)]+)',
    re.IGNORECASE,
)


def mask_token(token: str | None) -> str:
    """Keep the last four characters of a credential."""
    if not token or len(token) <= 4:
        return "***"
    return "*" * 6 + token[-4:]


class TokenMaskingFilter(logging.Filter):
    """Rewrite log records so access tokens never reach a handler in clear text."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _TOKEN_PATTERN.sub(
            lambda m: m.group("prefix") + mask_token(m.group("token")), message
        )
        if masked != message:
            record.msg = masked
            record.args = ()
        return True


def setup_logging():
    """
    Configure application logging.

    Root logger at LOG_LEVEL; console gets INFO and up, the UTF-8 log file
    everything. Both handlers mask credentials.
    """
    log_file = Path(settings.LOG_FILE)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()

    token_filter = TokenMaskingFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    console_handler.addFilter(token_filter)
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    file_handler.addFilter(token_filter)
    root_logger.addHandler(file_handler)

    root_logger.info(f"Logging initialized (level={settings.LOG_LEVEL}, file={log_file})")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (typically __name__)."""
    return logging.getLogger(name)
