"""Exception hierarchy for passcodelock.

Wrong codes, cancellations and biometric denials are not exceptions; they
reach the UI through the observer. Everything here means the caller drove the
lock incorrectly or a collaborator failed.
"""

from __future__ import annotations

from typing import Optional


class PasscodeLockError(Exception):
    """Base exception for all passcodelock errors."""


class InvalidSignError(PasscodeLockError):
    """Raised when a sign outside the digit alphabet is entered."""
    def __init__(self, sign: object):
        super().__init__(f"Invalid passcode sign: {sign!r}")
        self.sign = sign


class BufferFullError(PasscodeLockError):
    """Raised when appending to a buffer that already holds a full code."""
    def __init__(self, capacity: int):
        super().__init__(f"Sign buffer is full ({capacity} signs)")
        self.capacity = capacity


class EmptyBufferError(PasscodeLockError):
    """Raised when removing a sign from an empty buffer."""


class InvalidCodeLengthError(PasscodeLockError):
    """Raised when a state is asked to accept a code of the wrong length."""
    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected a {expected}-sign code, got {actual} signs")
        self.expected = expected
        self.actual = actual


class NotCancellableError(PasscodeLockError):
    """Raised when cancelling a state that does not allow cancellation."""


class RepositoryError(PasscodeLockError):
    """Raised when the passcode store cannot be read or written."""
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ConfigError(PasscodeLockError, ValueError):
    """Raised when service configuration cannot be loaded or validated."""
