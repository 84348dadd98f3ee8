"""Masking of credentials in log output.

Tokens that end up on a command line or in an error message are registered
here once and replaced with a mask wherever text is logged.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Record

MASK = "******"

_lock = threading.Lock()
_secrets: set[str] = set()


def mask_secret(*secrets: str | None) -> None:
    """Register secrets to be masked in log output. Empty values are ignored."""
    with _lock:
        _secrets.update(s for s in secrets if s)


def clear_secrets() -> None:
    with _lock:
        _secrets.clear()


def redact(text: str) -> str:
    """Replace every registered secret in text with the mask."""
    with _lock:
        # Longest first so a secret containing another is masked whole
        secrets = sorted(_secrets, key=len, reverse=True)
    for secret in secrets:
        text = text.replace(secret, MASK)
    return text


def redact_record(record: Record) -> None:
    """Loguru patcher masking registered secrets in the record message."""
    record["message"] = redact(record["message"])
