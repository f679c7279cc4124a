"""Pytest configuration for passcodelock."""
import os
from typing import List, Tuple

import pytest


# Keep test runs from writing logs into the user's state directory.
os.environ.setdefault("PASSCODELOCK_LOG_DIR", "/tmp")

from passcodelock.biometrics import ApprovalQueueBiometrics  # noqa: E402
from passcodelock.config import LockConfiguration  # noqa: E402
from passcodelock.lock import PasscodeLock, PasscodeLockObserver  # noqa: E402
from passcodelock.repository import InMemoryPasscodeRepository  # noqa: E402


class RecordingObserver(PasscodeLockObserver):
    """Observer that remembers every notification in order."""

    def __init__(self):
        self.events: List[Tuple] = []

    def names(self) -> List[str]:
        return [e[0] for e in self.events]

    def on_succeed(self, lock):
        self.events.append(("succeed",))

    def on_succeed_with_code(self, lock, code):
        self.events.append(("succeed_with_code", code))

    def on_fail(self, lock):
        self.events.append(("fail",))

    def on_lockout(self, lock):
        self.events.append(("lockout",))

    def on_state_changed(self, lock):
        self.events.append(("state_changed", type(lock.state).__name__))

    def on_sign_added(self, lock, index):
        self.events.append(("sign_added", index))

    def on_sign_removed(self, lock, index):
        self.events.append(("sign_removed", index))

    def on_cancelled(self, lock):
        self.events.append(("cancelled",))

    def on_biometrics_denied(self, lock):
        self.events.append(("biometrics_denied",))

    def on_biometrics_unavailable(self, lock):
        self.events.append(("biometrics_unavailable",))


def enter_code(lock: PasscodeLock, code: str) -> None:
    for sign in code:
        lock.add_sign(sign)


@pytest.fixture
def repo():
    return InMemoryPasscodeRepository(passcode="1234")


@pytest.fixture
def empty_repo():
    return InMemoryPasscodeRepository()


@pytest.fixture
def make_config(repo):
    def _make(**overrides):
        params = {"repository": repo, "passcode_length": 4, "allowed_retries": 3}
        params.update(overrides)
        return LockConfiguration(**params)
    return _make


@pytest.fixture
def biometrics():
    return ApprovalQueueBiometrics()


@pytest.fixture
def observer():
    return RecordingObserver()
