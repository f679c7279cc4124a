"""
Sign buffer.
- Collects digit signs up to a fixed capacity (the passcode length).
- Overflow and removal from an empty buffer raise instead of being absorbed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from passcodelock.errors import BufferFullError, EmptyBufferError, InvalidSignError

SIGNS = frozenset("0123456789")


def validate_sign(sign: str) -> str:
    """Return the sign if it is a single digit, raise InvalidSignError otherwise."""
    if not isinstance(sign, str) or sign not in SIGNS:
        raise InvalidSignError(sign)
    return sign


@dataclass
class SignBuffer:
    capacity: int
    _signs: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")

    def __len__(self) -> int:
        return len(self._signs)

    @property
    def is_full(self) -> bool:
        return len(self._signs) >= self.capacity

    @property
    def is_empty(self) -> bool:
        return not self._signs

    def append(self, sign: str) -> int:
        """Append a sign and return its index."""
        validate_sign(sign)
        if self.is_full:
            raise BufferFullError(self.capacity)
        self._signs.append(sign)
        return len(self._signs) - 1

    def remove(self) -> int:
        """Remove the last sign and return the index it occupied."""
        if not self._signs:
            raise EmptyBufferError("Sign buffer is empty")
        self._signs.pop()
        return len(self._signs)

    def clear(self) -> None:
        self._signs.clear()

    def as_code(self) -> str:
        return "".join(self._signs)
