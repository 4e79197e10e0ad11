"""Logger factory for the concierge backend.

Every module calls get_logger(__name__). The first call attaches one stream
handler to the root logger; the handler carries a filter that masks raw
customer email addresses, since order lookups and stylist tickets routinely
put them into log arguments.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Final

_HANDLER_ATTACHED: bool = False
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(r"([\w.+-])[\w.+-]*@([\w-]+\.[\w.-]+)")


def _resolve_level() -> int:
    level_name = os.getenv("CONCIERGE_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


class EmailMaskingFilter(logging.Filter):
    """Rewrite `jane.doe@example.com` as `j***@example.com` in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _EMAIL_PATTERN.sub(r"\1***@\2", message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; the shared stream handler is attached once."""
    global _HANDLER_ATTACHED

    level = _resolve_level()

    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handler.addFilter(EmailMaskingFilter())
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(level)
        _HANDLER_ATTACHED = True

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
