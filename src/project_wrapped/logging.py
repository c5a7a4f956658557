"""Logging setup for project-wrapped.

Adapters log request paths and, on failures, upstream responses. Every root
handler therefore carries a filter that masks access tokens and credentials
before a record is emitted.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any, ClassVar

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
JSON_FORMAT = (
    '{"time": "%(asctime)s", "level": "%(levelname)s", '
    '"name": "%(name)s", "message": "%(message)s"}'
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP transport loggers echo full URLs at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


class SecretRedactingFilter(logging.Filter):
    """Masks GitHub tokens and Azure DevOps credentials in log records."""

    SECRET_PATTERNS: ClassVar[list[tuple[re.Pattern[str], str]]] = [
        (re.compile(r"gh[pous]_[a-zA-Z0-9]{20,}"), "[REDACTED_GH_TOKEN]"),
        (re.compile(r"github_pat_[a-zA-Z0-9_]+"), "[REDACTED_GH_PAT]"),
        (re.compile(r"Bearer\s+[a-zA-Z0-9_\-\.=]+"), "Bearer [REDACTED]"),
        # Azure DevOps sends the PAT base64-encoded as Basic credentials
        (re.compile(r"Basic\s+[a-zA-Z0-9+/=]+"), "Basic [REDACTED]"),
        (re.compile(r"(Authorization:\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(token[=:]\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(\bpat[=:]\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._redact(str(record.msg))
        if isinstance(record.args, Mapping):
            record.args = {key: self._redact_arg(value) for key, value in record.args.items()}
        elif record.args:
            record.args = tuple(self._redact_arg(arg) for arg in record.args)
        return True

    def _redact_arg(self, arg: Any) -> Any:
        return self._redact(arg) if isinstance(arg, str) else arg

    def _redact(self, text: str) -> str:
        for pattern, replacement in self.SECRET_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


def setup_logging(verbose: bool = False, json_format: bool = False) -> None:
    """Configure the root logger.

    Args:
        verbose: Log at DEBUG instead of INFO.
        json_format: Emit one JSON object per line.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=JSON_FORMAT if json_format else TEXT_FORMAT,
        datefmt=DATE_FORMAT,
    )

    redaction_filter = SecretRedactingFilter()
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SecretRedactingFilter) for f in handler.filters):
            handler.addFilter(redaction_filter)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
