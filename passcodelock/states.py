"""
Lock states.

The set of states is closed: EnterPasscode, SetPasscode, ConfirmPasscode,
ChangePasscode and RemovePasscode. States are immutable values; what happens
when a full code arrives is decided by accept_code(), which returns an Outcome
for the lock to apply. Repository writes (attempt counter, stored code) happen
inside accept_code() before the Outcome is returned, so a repository error
leaves the lock in its previous state.

    Set --code--> Confirm --match--> success (code stored)
                     |
                     +--mismatch--> Set("Try again") + failure

    Change --old code ok--> Set --> Confirm
    Enter / Remove --ok--> success (Remove also deletes the code)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from passcodelock.config import LockConfiguration
from passcodelock.errors import InvalidCodeLengthError, PasscodeLockError
from passcodelock.utils import logger


class LockMode(str, Enum):
    ENTER_PASSCODE = "enter_passcode"
    SET_PASSCODE = "set_passcode"
    CHANGE_PASSCODE = "change_passcode"
    REMOVE_PASSCODE = "remove_passcode"


@dataclass(frozen=True)
class EnterPasscode:
    allow_cancellation: bool = False
    title: str = field(default="Enter Passcode", compare=False)
    description: str = field(default="Enter your passcode to proceed.", compare=False)

    @property
    def is_cancellable(self) -> bool:
        return self.allow_cancellation

    @property
    def is_touch_id_allowed(self) -> bool:
        return True


@dataclass(frozen=True)
class SetPasscode:
    title: str = field(default="Set Passcode", compare=False)
    description: str = field(default="Enter a new passcode.", compare=False)

    is_cancellable = True
    is_touch_id_allowed = False


@dataclass(frozen=True)
class ConfirmPasscode:
    pending_code: str = field(repr=False)
    title: str = field(default="Confirm Passcode", compare=False)
    description: str = field(default="Enter the passcode again.", compare=False)

    is_cancellable = True
    is_touch_id_allowed = False


@dataclass(frozen=True)
class ChangePasscode:
    title: str = field(default="Change Passcode", compare=False)
    description: str = field(default="Enter your old passcode.", compare=False)

    is_cancellable = True
    is_touch_id_allowed = False


@dataclass(frozen=True)
class RemovePasscode:
    title: str = field(default="Remove Passcode", compare=False)
    description: str = field(default="Enter your passcode to remove it.", compare=False)

    is_cancellable = True
    is_touch_id_allowed = True


LockState = Union[EnterPasscode, SetPasscode, ConfirmPasscode, ChangePasscode, RemovePasscode]

MISMATCH_TITLE = "Try again"
MISMATCH_DESCRIPTION = "Passcodes didn't match."


def initial_state(mode: LockMode | str) -> LockState:
    """Return the first state of the flow selected by mode."""
    mode = LockMode(mode)
    if mode is LockMode.ENTER_PASSCODE:
        return EnterPasscode()
    if mode is LockMode.SET_PASSCODE:
        return SetPasscode()
    if mode is LockMode.CHANGE_PASSCODE:
        return ChangePasscode()
    return RemovePasscode()


def state_name(state: LockState) -> str:
    return type(state).__name__


# ----------------------- Outcomes ------------------------
class OutcomeKind(str, Enum):
    SUCCEED = "succeed"
    FAIL = "fail"
    TRANSITION = "transition"


@dataclass(frozen=True)
class Outcome:
    """
    Result of handing a full code (or a biometric approval) to a state.

    - SUCCEED: code is set when the flow established a new passcode.
    - FAIL: lockout is True exactly when this failure crossed the retry threshold;
      next_state is set when the failure also moves the flow (confirm mismatch).
    - TRANSITION: next_state replaces the active state.
    """
    kind: OutcomeKind
    next_state: Optional[LockState] = None
    code: Optional[str] = field(default=None, repr=False)
    lockout: bool = False

    @classmethod
    def succeed(cls, code: Optional[str] = None) -> "Outcome":
        return cls(OutcomeKind.SUCCEED, code=code)

    @classmethod
    def fail(cls, *, lockout: bool = False, next_state: Optional[LockState] = None) -> "Outcome":
        return cls(OutcomeKind.FAIL, next_state=next_state, lockout=lockout)

    @classmethod
    def transition(cls, next_state: LockState) -> "Outcome":
        return cls(OutcomeKind.TRANSITION, next_state=next_state)


# ----------------------- Transitions ---------------------
def _verify(code: str, configuration: LockConfiguration) -> Optional[Outcome]:
    """Check code against the stored one; None on match, a failure Outcome otherwise."""
    repo = configuration.repository
    stored = repo.get_passcode()
    if stored is None:
        logger.warning("[State] No passcode stored; nothing to verify against")
        return Outcome.fail()

    if code == stored:
        repo.reset_failed_attempts()
        return None

    attempts = repo.increment_failed_attempts()
    threshold = configuration.lockout_threshold
    lockout = threshold is not None and attempts == threshold
    if lockout:
        logger.warning("[State] Failed attempts reached %s; lockout", attempts)
    else:
        logger.info("[State] Wrong passcode (attempt %s)", attempts)
    return Outcome.fail(lockout=lockout)


def accept_code(state: LockState, code: str, configuration: LockConfiguration) -> Outcome:
    """Apply a full code to state and return what the lock should do next."""
    if len(code) != configuration.passcode_length:
        raise InvalidCodeLengthError(configuration.passcode_length, len(code))

    if isinstance(state, SetPasscode):
        return Outcome.transition(ConfirmPasscode(pending_code=code))

    if isinstance(state, ConfirmPasscode):
        if code != state.pending_code:
            logger.info("[State] Confirmation mismatch; back to set")
            retry = SetPasscode(title=MISMATCH_TITLE, description=MISMATCH_DESCRIPTION)
            return Outcome.fail(next_state=retry)
        configuration.repository.set_passcode(code)
        return Outcome.succeed(code=code)

    if isinstance(state, ChangePasscode):
        failure = _verify(code, configuration)
        return failure or Outcome.transition(SetPasscode())

    if isinstance(state, RemovePasscode):
        failure = _verify(code, configuration)
        if failure:
            return failure
        configuration.repository.delete_passcode()
        return Outcome.succeed()

    if isinstance(state, EnterPasscode):
        return _verify(code, configuration) or Outcome.succeed()

    raise TypeError(f"Unknown lock state: {state!r}")


def accept_biometrics(state: LockState, configuration: LockConfiguration) -> Outcome:
    """Success path for a biometric approval; the attempt counter is left alone."""
    if isinstance(state, RemovePasscode):
        configuration.repository.delete_passcode()
        return Outcome.succeed()
    if isinstance(state, EnterPasscode):
        return Outcome.succeed()
    raise PasscodeLockError(f"{state_name(state)} does not accept biometric authentication")
