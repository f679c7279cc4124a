"""
Passcode repositories.
- PasscodeRepository: the contract the lock reads and writes through.
- InMemoryPasscodeRepository: process-local store (tests, demos).
- JsonFilePasscodeRepository: JSON file store with an fcntl lock and atomic replace.
"""

from __future__ import annotations

import fcntl
import json
import os
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from passcodelock.errors import RepositoryError
from passcodelock.utils import logger


class PasscodeRepository(ABC):
    """Stores the passcode and the failed-attempt counter."""

    def has_passcode(self) -> bool:
        return self.get_passcode() is not None

    @abstractmethod
    def get_passcode(self) -> Optional[str]:
        ...

    @abstractmethod
    def set_passcode(self, code: str) -> None:
        ...

    @abstractmethod
    def delete_passcode(self) -> None:
        ...

    @property
    @abstractmethod
    def failed_attempts(self) -> int:
        ...

    @abstractmethod
    def increment_failed_attempts(self) -> int:
        """Add one failed attempt and return the new count."""

    @abstractmethod
    def reset_failed_attempts(self) -> None:
        ...


class InMemoryPasscodeRepository(PasscodeRepository):
    def __init__(self, passcode: Optional[str] = None, failed_attempts: int = 0) -> None:
        self._passcode = passcode
        self._failed_attempts = int(failed_attempts)

    def get_passcode(self) -> Optional[str]:
        return self._passcode

    def set_passcode(self, code: str) -> None:
        self._passcode = code

    def delete_passcode(self) -> None:
        self._passcode = None

    @property
    def failed_attempts(self) -> int:
        return self._failed_attempts

    def increment_failed_attempts(self) -> int:
        self._failed_attempts += 1
        return self._failed_attempts

    def reset_failed_attempts(self) -> None:
        self._failed_attempts = 0


# ----------------------- Locks ---------------------------
@contextmanager
def file_lock(path: Path, timeout: float = 10.0):
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(str(path), os.O_RDWR | os.O_CREAT, 0o600)
    start = time.monotonic()
    try:
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start > timeout:
                    raise TimeoutError(f"Could not acquire lock {path} within {timeout}s")
                time.sleep(0.05)
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)


class JsonFilePasscodeRepository(PasscodeRepository):
    """
    Keeps {"passcode": "1234" | null, "failed_attempts": 0} in a JSON file.

    Every read goes to disk so several processes can share one store.
    Writes go to a temp file first and are moved into place with os.replace.
    Any OS or JSON error surfaces as RepositoryError.
    """

    def __init__(self, path: os.PathLike | str, *, lock_timeout: float = 10.0) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_suffix(self.path.suffix + ".lock")
        self.lock_timeout = float(lock_timeout)

    # ----------------- internal helpers -----------------
    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"passcode": None, "failed_attempts": 0}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.error("[Repo] Failed to read %s: %s", self.path, e)
            raise RepositoryError(f"Failed to read {self.path}: {e}", str(self.path)) from e
        if not isinstance(data, dict):
            raise RepositoryError(f"Unexpected content in {self.path}", str(self.path))
        data.setdefault("passcode", None)
        data.setdefault("failed_attempts", 0)
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                f.write(json.dumps(data, indent=2))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error("[Repo] Failed to write %s: %s", self.path, e)
            raise RepositoryError(f"Failed to write {self.path}: {e}", str(self.path)) from e

    @contextmanager
    def _locked(self):
        try:
            with file_lock(self.lock_path, timeout=self.lock_timeout):
                yield
        except OSError as e:
            # TimeoutError is an OSError
            raise RepositoryError(f"Store {self.path} unavailable: {e}", str(self.path)) from e

    def _update(self, **changes: Any) -> Dict[str, Any]:
        with self._locked():
            data = self._read()
            data.update(changes)
            self._write(data)
            return data

    # ----------------- contract -----------------
    def get_passcode(self) -> Optional[str]:
        with self._locked():
            code = self._read().get("passcode")
        return str(code) if code is not None else None

    def set_passcode(self, code: str) -> None:
        self._update(passcode=code)
        logger.info("[Repo] Passcode stored in %s", self.path)

    def delete_passcode(self) -> None:
        self._update(passcode=None)
        logger.info("[Repo] Passcode removed from %s", self.path)

    @property
    def failed_attempts(self) -> int:
        with self._locked():
            return int(self._read().get("failed_attempts") or 0)

    def increment_failed_attempts(self) -> int:
        with self._locked():
            data = self._read()
            data["failed_attempts"] = int(data.get("failed_attempts") or 0) + 1
            self._write(data)
        return data["failed_attempts"]

    def reset_failed_attempts(self) -> None:
        self._update(failed_attempts=0)
