"""Passcode lock: set, confirm, change, remove and verify a numeric passcode."""

from passcodelock.biometrics import ApprovalQueueBiometrics, BiometricAuthenticator, UnavailableBiometrics
from passcodelock.config import LockConfiguration, ServiceConfig, load_config
from passcodelock.controller import PasscodeLockController, PlaceholderState
from passcodelock.errors import (
    BufferFullError,
    ConfigError,
    EmptyBufferError,
    InvalidCodeLengthError,
    InvalidSignError,
    NotCancellableError,
    PasscodeLockError,
    RepositoryError,
)
from passcodelock.lock import PasscodeLock, PasscodeLockObserver
from passcodelock.repository import InMemoryPasscodeRepository, JsonFilePasscodeRepository, PasscodeRepository
from passcodelock.sign_buffer import SignBuffer
from passcodelock.states import (
    ChangePasscode,
    ConfirmPasscode,
    EnterPasscode,
    LockMode,
    RemovePasscode,
    SetPasscode,
)

__version__ = "1.0.0"

__all__ = [
    "ApprovalQueueBiometrics",
    "BiometricAuthenticator",
    "UnavailableBiometrics",
    "LockConfiguration",
    "ServiceConfig",
    "load_config",
    "PasscodeLockController",
    "PlaceholderState",
    "BufferFullError",
    "ConfigError",
    "EmptyBufferError",
    "InvalidCodeLengthError",
    "InvalidSignError",
    "NotCancellableError",
    "PasscodeLockError",
    "RepositoryError",
    "PasscodeLock",
    "PasscodeLockObserver",
    "InMemoryPasscodeRepository",
    "JsonFilePasscodeRepository",
    "PasscodeRepository",
    "SignBuffer",
    "ChangePasscode",
    "ConfirmPasscode",
    "EnterPasscode",
    "LockMode",
    "RemovePasscode",
    "SetPasscode",
]
