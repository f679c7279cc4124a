"""
Passcode lock orchestrator.
- Owns the active state and the sign buffer; the configuration is shared read-only.
- Full codes are handed to accept_code(); the Outcome is applied atomically:
  state replaced first, then the observer is told what happened.
- The observer is held weakly so the lock never keeps the UI alive.
- Not thread-safe: every call, including biometric callbacks, must come from
  the thread that owns the lock.
"""

from __future__ import annotations

import weakref
from typing import Optional

from passcodelock.biometrics import BiometricAuthenticator, UnavailableBiometrics
from passcodelock.config import LockConfiguration
from passcodelock.errors import NotCancellableError
from passcodelock.repository import PasscodeRepository
from passcodelock.sign_buffer import SignBuffer
from passcodelock.states import (
    LockMode,
    LockState,
    Outcome,
    OutcomeKind,
    accept_biometrics,
    accept_code,
    initial_state,
    state_name,
)
from passcodelock.utils import logger


class PasscodeLockObserver:
    """Receives lock notifications. Every method is a no-op; override what you need."""

    def on_succeed(self, lock: "PasscodeLock") -> None:
        pass

    def on_succeed_with_code(self, lock: "PasscodeLock", code: str) -> None:
        pass

    def on_fail(self, lock: "PasscodeLock") -> None:
        pass

    def on_lockout(self, lock: "PasscodeLock") -> None:
        pass

    def on_state_changed(self, lock: "PasscodeLock") -> None:
        pass

    def on_sign_added(self, lock: "PasscodeLock", index: int) -> None:
        pass

    def on_sign_removed(self, lock: "PasscodeLock", index: int) -> None:
        pass

    def on_cancelled(self, lock: "PasscodeLock") -> None:
        pass

    def on_biometrics_denied(self, lock: "PasscodeLock") -> None:
        pass

    def on_biometrics_unavailable(self, lock: "PasscodeLock") -> None:
        pass


class PasscodeLock:
    def __init__(
        self,
        state: LockState,
        configuration: LockConfiguration,
        biometrics: Optional[BiometricAuthenticator] = None,
    ) -> None:
        self.configuration = configuration
        self.biometrics = biometrics or UnavailableBiometrics()
        self._state: LockState = state
        self._buffer = SignBuffer(configuration.passcode_length)
        self._observer_ref: Optional[weakref.ref] = None
        # Token of the outstanding biometric request, if any
        self._biometric_request: Optional[object] = None

    @classmethod
    def from_mode(
        cls,
        mode: LockMode | str,
        configuration: LockConfiguration,
        biometrics: Optional[BiometricAuthenticator] = None,
    ) -> "PasscodeLock":
        return cls(initial_state(mode), configuration, biometrics)

    # ------------- observer -------------
    @property
    def observer(self) -> Optional[PasscodeLockObserver]:
        return self._observer_ref() if self._observer_ref is not None else None

    @observer.setter
    def observer(self, observer: Optional[PasscodeLockObserver]) -> None:
        self._observer_ref = weakref.ref(observer) if observer is not None else None

    def _notify(self, event: str, *args) -> None:
        observer = self.observer
        if observer is not None:
            getattr(observer, event)(self, *args)

    # ------------- queries -------------
    @property
    def state(self) -> LockState:
        return self._state

    @property
    def repository(self) -> PasscodeRepository:
        return self.configuration.repository

    @property
    def passcode_length(self) -> int:
        return self.configuration.passcode_length

    @property
    def signs_entered(self) -> int:
        return len(self._buffer)

    @property
    def is_touch_id_allowed(self) -> bool:
        return (
            self.configuration.is_touch_id_allowed
            and self._state.is_touch_id_allowed
            and self.biometrics.is_available()
        )

    @property
    def is_biometric_request_pending(self) -> bool:
        return self._biometric_request is not None

    # ------------- signs -------------
    def add_sign(self, sign: str) -> None:
        index = self._buffer.append(sign)
        self._notify("on_sign_added", index)

        if self._buffer.is_full:
            code = self._buffer.as_code()
            self._buffer.clear()
            outcome = accept_code(self._state, code, self.configuration)
            self._apply(outcome)

    def remove_sign(self) -> None:
        index = self._buffer.remove()
        self._notify("on_sign_removed", index)

    # ------------- flow -------------
    def change_state(self, state: LockState) -> None:
        logger.info("[Lock] %s -> %s", state_name(self._state), state_name(state))
        self._state = state
        self._buffer.clear()
        self._biometric_request = None
        self._notify("on_state_changed")

    def cancel(self) -> None:
        """End a cancellable flow; the repository is left untouched."""
        if not self._state.is_cancellable:
            raise NotCancellableError(f"{state_name(self._state)} cannot be cancelled")
        logger.info("[Lock] %s cancelled", state_name(self._state))
        self._buffer.clear()
        self._biometric_request = None
        self._notify("on_cancelled")

    def _apply(self, outcome: Outcome) -> None:
        if outcome.next_state is not None:
            self.change_state(outcome.next_state)

        if outcome.kind is OutcomeKind.SUCCEED:
            logger.info("[Lock] %s succeeded", state_name(self._state))
            if outcome.code is not None:
                self._notify("on_succeed_with_code", outcome.code)
            self._notify("on_succeed")
        elif outcome.kind is OutcomeKind.FAIL:
            if outcome.lockout:
                self._notify("on_lockout")
            self._notify("on_fail")

    # ------------- biometrics -------------
    def authenticate_with_biometrics(self) -> None:
        """Ask the biometric capability for approval; the answer arrives via callback."""
        if not self.is_touch_id_allowed:
            logger.info("[Lock] Biometrics not allowed in %s", state_name(self._state))
            self._notify("on_biometrics_unavailable")
            return
        if self._biometric_request is not None:
            logger.debug("[Lock] Biometric request already pending")
            return

        token = object()
        requested = self._state
        self._biometric_request = token
        self.biometrics.request_authentication(
            self.configuration.biometrics_reason,
            lambda approved: self._on_biometric_result(token, requested, approved),
        )

    def _on_biometric_result(self, token: object, requested: LockState, approved: bool) -> None:
        if self._biometric_request is not token or self._state is not requested:
            logger.info("[Lock] Dropping stale biometric result")
            return
        self._biometric_request = None

        if not approved:
            self._notify("on_biometrics_denied")
            return
        self._apply(accept_biometrics(self._state, self.configuration))
