"""
Headless lock-screen controller.
- Mirrors what a passcode screen shows: title, description, placeholders,
  cancel / biometrics / delete buttons.
- Forwards taps into the PasscodeLock and reacts to its notifications.
- Input is ignored while wrong-code feedback is showing and after dismissal.
- Background/foreground pause and resume the automatic biometric prompt.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from passcodelock.biometrics import BiometricAuthenticator
from passcodelock.config import LockConfiguration
from passcodelock.lock import PasscodeLock, PasscodeLockObserver
from passcodelock.states import LockMode, LockState, state_name
from passcodelock.utils import logger

MAX_EVENTS = 100


class PlaceholderState(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    ERROR = "error"


class PasscodeLockController(PasscodeLockObserver):
    def __init__(
        self,
        state: LockState | LockMode | str,
        configuration: LockConfiguration,
        biometrics: Optional[BiometricAuthenticator] = None,
        *,
        success_callback: Optional[Callable[[PasscodeLock], None]] = None,
        success_code_callback: Optional[Callable[[PasscodeLock, str], None]] = None,
        dismiss_completion_callback: Optional[Callable[[], None]] = None,
        lockout_callback: Optional[Callable[[PasscodeLock], None]] = None,
    ) -> None:
        if isinstance(state, (LockMode, str)):
            self.lock = PasscodeLock.from_mode(state, configuration, biometrics)
        else:
            self.lock = PasscodeLock(state, configuration, biometrics)
        self.lock.observer = self
        self.configuration = configuration

        self.success_callback = success_callback
        self.success_code_callback = success_code_callback
        self.dismiss_completion_callback = dismiss_completion_callback
        self.lockout_callback = lockout_callback

        self.placeholders: List[PlaceholderState] = [PlaceholderState.INACTIVE] * configuration.passcode_length
        self.is_delete_enabled = False
        self.is_placeholders_animation_completed = True
        self.is_dismissed = False
        self.is_locked_out = False
        self.events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENTS)

        self._should_try_biometrics = True
        self.title = ""
        self.description = ""
        self.is_cancel_visible = False
        self.is_touch_id_visible = False
        self._update_view()

    # ------------- view -------------
    def _update_view(self) -> None:
        state = self.lock.state
        self.title = state.title
        self.description = state.description
        self.is_cancel_visible = state.is_cancellable
        self.is_touch_id_visible = self.lock.is_touch_id_allowed

    def _set_placeholders(self, value: PlaceholderState) -> None:
        self.placeholders = [value] * len(self.placeholders)

    def _set_placeholder(self, index: int, value: PlaceholderState) -> None:
        if 0 <= index < len(self.placeholders):
            self.placeholders[index] = value

    def _record(self, event: str, **extra: Any) -> None:
        entry = {"event": event, "ts": datetime.now(timezone.utc).isoformat()}
        entry.update(extra)
        self.events.append(entry)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": state_name(self.lock.state),
            "title": self.title,
            "description": self.description,
            "placeholders": [p.value for p in self.placeholders],
            "signs_entered": self.lock.signs_entered,
            "is_cancel_visible": self.is_cancel_visible,
            "is_touch_id_visible": self.is_touch_id_visible,
            "is_delete_enabled": self.is_delete_enabled,
            "is_input_enabled": self.is_input_enabled,
            "is_dismissed": self.is_dismissed,
            "is_locked_out": self.is_locked_out,
            "failed_attempts": self.lock.repository.failed_attempts,
        }

    @property
    def is_input_enabled(self) -> bool:
        return self.is_placeholders_animation_completed and not self.is_dismissed

    # ------------- lifecycle -------------
    def appear(self) -> None:
        """Screen became visible."""
        if self._should_try_biometrics:
            self._authenticate_with_biometrics()

    def app_will_enter_foreground(self) -> None:
        self._should_try_biometrics = True
        self._authenticate_with_biometrics()

    def app_did_enter_background(self) -> None:
        self._should_try_biometrics = False

    def _authenticate_with_biometrics(self) -> None:
        if self.is_dismissed:
            return
        if self.configuration.should_request_biometrics_immediately and self.lock.is_touch_id_allowed:
            self.lock.authenticate_with_biometrics()

    # ------------- actions -------------
    def sign_tapped(self, sign: str) -> bool:
        """Forward a sign; returns False when input is currently ignored."""
        if not self.is_input_enabled:
            logger.debug("[Controller] Sign ignored (input disabled)")
            return False
        self.lock.add_sign(sign)
        return True

    def delete_tapped(self) -> bool:
        if not self.is_input_enabled or self.lock.signs_entered == 0:
            return False
        self.lock.remove_sign()
        return True

    def cancel_tapped(self) -> bool:
        if self.is_dismissed or not self.lock.state.is_cancellable:
            return False
        self.lock.cancel()
        return True

    def touch_id_tapped(self) -> None:
        if not self.is_dismissed:
            self.lock.authenticate_with_biometrics()

    def error_feedback_finished(self) -> None:
        """Wrong-code feedback is over; accept input again."""
        self.is_placeholders_animation_completed = True
        self._set_placeholders(PlaceholderState.INACTIVE)

    def _dismiss(self, completion: Optional[Callable[[], None]] = None) -> None:
        if self.is_dismissed:
            return
        self.is_dismissed = True
        logger.info("[Controller] Dismissed (%s)", state_name(self.lock.state))
        if self.dismiss_completion_callback:
            self.dismiss_completion_callback()
        if completion:
            completion()

    # ------------- PasscodeLockObserver -------------
    def on_succeed(self, lock: PasscodeLock) -> None:
        self._record("succeed")
        self.is_delete_enabled = True
        self._set_placeholders(PlaceholderState.INACTIVE)

        def _completion() -> None:
            if self.success_callback:
                self.success_callback(lock)

        self._dismiss(_completion)

    def on_succeed_with_code(self, lock: PasscodeLock, code: str) -> None:
        self._record("succeed_with_code")
        self.is_delete_enabled = True
        self._set_placeholders(PlaceholderState.INACTIVE)
        if self.success_code_callback:
            self.success_code_callback(lock, code)

    def on_fail(self, lock: PasscodeLock) -> None:
        self._record("fail")
        self.is_delete_enabled = False
        self.is_placeholders_animation_completed = False
        self._set_placeholders(PlaceholderState.ERROR)

    def on_lockout(self, lock: PasscodeLock) -> None:
        self._record("lockout", failed_attempts=lock.repository.failed_attempts)
        self.is_locked_out = True
        if self.lockout_callback:
            self.lockout_callback(lock)

    def on_state_changed(self, lock: PasscodeLock) -> None:
        self._record("state_changed", state=state_name(lock.state))
        self._update_view()
        self._set_placeholders(PlaceholderState.INACTIVE)
        self.is_delete_enabled = False

    def on_sign_added(self, lock: PasscodeLock, index: int) -> None:
        self._record("sign_added", index=index)
        self._set_placeholder(index, PlaceholderState.ACTIVE)
        self.is_delete_enabled = True

    def on_sign_removed(self, lock: PasscodeLock, index: int) -> None:
        self._record("sign_removed", index=index)
        self._set_placeholder(index, PlaceholderState.INACTIVE)
        if index == 0:
            self.is_delete_enabled = False

    def on_cancelled(self, lock: PasscodeLock) -> None:
        self._record("cancelled")
        self._set_placeholders(PlaceholderState.INACTIVE)
        self.is_delete_enabled = False
        self._dismiss()

    def on_biometrics_denied(self, lock: PasscodeLock) -> None:
        self._record("biometrics_denied")

    def on_biometrics_unavailable(self, lock: PasscodeLock) -> None:
        self._record("biometrics_unavailable")
        self.is_touch_id_visible = False
