"""
Centralized logger for passcodelock.
- Log directory detection with fallbacks (env override, user state dir, /tmp).
- Rotating file logs + console logs.
- Passcode redaction in all outputs.
- UTC timestamps.
"""

from __future__ import annotations

import logging
import os
import re
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


# ---------- Redaction ----------

_CODE_KV_RE = re.compile(r"\b((?:pending_)?code|passcode)(\s*[=:]\s*['\"]?)(\d+)", re.IGNORECASE)
_CODE_JSON_RE = re.compile(r'("(?:pending_code|code|passcode)"\s*:\s*")[^"]*(")', re.IGNORECASE)


def redact(text: str) -> str:
    """Mask passcodes in log lines (code=1234 -> code=****)."""
    if not text:
        return text
    red = _CODE_JSON_RE.sub(r"\1****\2", text)
    red = _CODE_KV_RE.sub(lambda m: m.group(1) + m.group(2) + "*" * len(m.group(3)), red)
    return red


class RedactingFormatter(logging.Formatter):
    """Formatter that redacts passcodes after standard formatting."""
    def format(self, record: logging.LogRecord) -> str:
        s = super().format(record)
        return redact(s)


# ---------- Log dir resolution ----------

def _ensure_dir(path: str) -> Optional[str]:
    try:
        os.makedirs(path, exist_ok=True)
        # quick writability check
        test_file = os.path.join(path, ".passcodelock_touch")
        with open(test_file, "w", encoding="utf-8") as f:
            f.write("ok")
        os.remove(test_file)
        return path
    except OSError:
        return None


def _resolve_log_dir() -> str:
    # Priority: env override -> ~/.local/state -> /tmp
    candidates = [
        os.environ.get("PASSCODELOCK_LOG_DIR"),
        str(Path.home() / ".local" / "state" / "passcodelock" / "logs"),
        "/tmp",
    ]
    for c in candidates:
        if c and _ensure_dir(c):
            return c
    return "/tmp"


LOG_DIR = _resolve_log_dir()
LOG_FILE = os.path.join(LOG_DIR, "passcodelock.log")


# ---------- Logger setup ----------

_LOG_FORMAT = "%(asctime)s [%(levelname)s] [passcodelock] %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _make_formatter() -> RedactingFormatter:
    fmt = RedactingFormatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)
    # UTC timestamps
    fmt.converter = time.gmtime
    return fmt


logger = logging.getLogger("passcodelock")
logger.setLevel(os.environ.get("PASSCODELOCK_LOG_LEVEL", "INFO").upper())

# Avoid duplicate handlers if module is re-imported
if logger.handlers:
    for h in list(logger.handlers):
        logger.removeHandler(h)

_console = logging.StreamHandler()
_console.setLevel(logger.level)
_console.setFormatter(_make_formatter())
logger.addHandler(_console)

# Rotating file handler (best-effort)
try:
    _file = RotatingFileHandler(LOG_FILE, maxBytes=1_000_000, backupCount=5)
    _file.setLevel(logger.level)
    _file.setFormatter(_make_formatter())
    logger.addHandler(_file)
    logger.debug("[LOG] File logging to %s", LOG_FILE)
except OSError as e:
    logger.warning("[LOG] File handler unavailable (%s); console-only mode", e)


def set_log_level(level: str = "INFO") -> None:
    """Dynamically change the log level."""
    lvl = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logger.setLevel(lvl)
    for h in logger.handlers:
        h.setLevel(lvl)
