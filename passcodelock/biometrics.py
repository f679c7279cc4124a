"""
Biometric capabilities.
- BiometricAuthenticator: "request approval, get called back with True/False".
- UnavailableBiometrics: device without a sensor; never approves.
- ApprovalQueueBiometrics: requests wait until someone calls resolve() (HTTP
  endpoint, test, companion device). The callback runs on the resolving thread,
  which must be the thread that owns the lock.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from passcodelock.utils import logger

BiometricCallback = Callable[[bool], None]


class BiometricAuthenticator(ABC):
    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    def request_authentication(self, reason: str, callback: BiometricCallback) -> None:
        """Start an authentication; callback(approved) is invoked later."""


class UnavailableBiometrics(BiometricAuthenticator):
    def is_available(self) -> bool:
        return False

    def request_authentication(self, reason: str, callback: BiometricCallback) -> None:
        logger.info("[Biometrics] Not available; denying request")
        callback(False)


@dataclass
class PendingRequest:
    reason: str
    callback: BiometricCallback


class ApprovalQueueBiometrics(BiometricAuthenticator):
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self._pending: Deque[PendingRequest] = deque()

    def is_available(self) -> bool:
        return self.available

    def request_authentication(self, reason: str, callback: BiometricCallback) -> None:
        self._pending.append(PendingRequest(reason, callback))
        logger.info("[Biometrics] Approval requested: %s (%d pending)", reason, len(self._pending))

    @property
    def pending(self) -> int:
        return len(self._pending)

    def peek_reason(self) -> Optional[str]:
        return self._pending[0].reason if self._pending else None

    def clear(self) -> None:
        """Forget every pending request without calling back."""
        if self._pending:
            logger.info("[Biometrics] Dropping %d pending request(s)", len(self._pending))
        self._pending.clear()

    def resolve(self, approved: bool) -> bool:
        """Answer the oldest pending request. Returns False if none was waiting."""
        if not self._pending:
            logger.warning("[Biometrics] resolve(%s) with no pending request", approved)
            return False
        req = self._pending.popleft()
        logger.info("[Biometrics] Request %s", "approved" if approved else "denied")
        req.callback(bool(approved))
        return True
