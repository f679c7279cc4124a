"""
Hardware keypad input.
- Maps evdev key names / numeric codes onto lock actions.
- KeypadListener reads a USB keypad on a daemon thread with auto-reconnect and
  hands every action to a dispatch callable (which must marshal it onto the
  thread that owns the lock).
"""

from __future__ import annotations

import glob
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from passcodelock.utils import logger

# Optional evdev import (guarded)
try:
    from evdev import InputDevice, categorize, ecodes  # type: ignore
    _HAS_EVDEV = True
except ImportError:
    _HAS_EVDEV = False


SIGN = "sign"
DELETE = "delete"
CANCEL = "cancel"
BIOMETRICS = "biometrics"


@dataclass(frozen=True)
class KeypadAction:
    kind: str
    sign: Optional[str] = None


# Key mapping tables
_MAIN_ROW_NUM = {2: "1", 3: "2", 4: "3", 5: "4", 6: "5", 7: "6", 8: "7", 9: "8", 10: "9", 11: "0"}  # KEY_1..KEY_0
_KP_NUM = {79: "1", 80: "2", 81: "3", 75: "4", 76: "5", 77: "6", 71: "7", 72: "8", 73: "9", 82: "0"}  # KP1..KP0
_DELETE_CODES = (14, 111)     # Backspace, Delete
_CANCEL_CODES = (1, 55)       # Esc, KP asterisk
_BIOMETRICS_CODES = (59,)     # F1


def map_keycode_name(name: str) -> Optional[KeypadAction]:
    if not name:
        return None
    k = name[4:] if name.startswith("KEY_") else name
    if k in ("BACKSPACE", "DELETE", "DEL"):
        return KeypadAction(DELETE)
    if k in ("ESC", "KPASTERISK"):
        return KeypadAction(CANCEL)
    if k == "F1":
        return KeypadAction(BIOMETRICS)
    if k.startswith("KP") and len(k) == 3 and k[2].isdigit():
        return KeypadAction(SIGN, k[2])
    if len(k) == 1 and k.isdigit():
        return KeypadAction(SIGN, k)
    return None


def map_keycode_int(code: int) -> Optional[KeypadAction]:
    if code in _MAIN_ROW_NUM:
        return KeypadAction(SIGN, _MAIN_ROW_NUM[code])
    if code in _KP_NUM:
        return KeypadAction(SIGN, _KP_NUM[code])
    if code in _DELETE_CODES:
        return KeypadAction(DELETE)
    if code in _CANCEL_CODES:
        return KeypadAction(CANCEL)
    if code in _BIOMETRICS_CODES:
        return KeypadAction(BIOMETRICS)
    return None


def find_keypad_device(pattern: str = "/dev/input/event*") -> Optional[str]:
    if not _HAS_EVDEV:
        return None
    for p in sorted(glob.glob(pattern)):
        try:
            dev = InputDevice(p)
        except OSError as e:
            logger.warning("[Keypad] open failed %s: %s", p, e)
            continue
        name = (dev.name or "").lower()
        dev.close()
        if any(k in name for k in ("keyboard", "keypad", "usb")):
            logger.info("[Keypad] candidate %s name='%s'", p, name)
            return p
    return None


class KeypadListener:
    """Reads key-down events from an evdev device and dispatches lock actions."""

    def __init__(
        self,
        dispatch: Callable[[KeypadAction], None],
        device_path: Optional[str] = None,
        *,
        retry_s: float = 5.0,
    ) -> None:
        self.dispatch = dispatch
        self.device_path = device_path
        self.retry_s = float(retry_s)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def available(self) -> bool:
        return _HAS_EVDEV

    def start(self) -> bool:
        if not _HAS_EVDEV:
            logger.warning("[Keypad] evdev not available; keypad listener not started")
            return False
        self._thread = threading.Thread(target=self._run, name="keypad-listener", daemon=True)
        self._thread.start()
        return True

    def stop(self) -> None:
        self._stop.set()

    def _resolve_path(self) -> Optional[str]:
        path = (self.device_path or "").strip()
        if path and os.path.exists(path):
            return path
        if path:
            logger.warning("[Keypad] Configured device not found: %s (falling back to scan)", path)
        return find_keypad_device()

    def _run(self) -> None:
        while not self._stop.is_set():
            path = self._resolve_path()
            if not path:
                logger.warning("[Keypad] No keypad device found (retry in %ss)", self.retry_s)
                self._stop.wait(self.retry_s)
                continue

            try:
                dev = InputDevice(path)
            except OSError as e:
                logger.warning("[Keypad] Failed to open %s: %s (retry in %ss)", path, e, self.retry_s)
                self._stop.wait(self.retry_s)
                continue

            logger.info("[Keypad] Listening on %s (%s)", path, getattr(dev, "name", "unknown"))
            try:
                for event in dev.read_loop():
                    if self._stop.is_set():
                        break
                    if event.type != ecodes.EV_KEY or event.value != 1:
                        continue
                    self._handle(event)
            except OSError as e:
                # Device may have been unplugged; loop to reopen
                logger.warning("[Keypad] Device error: %s (will retry)", e)
                time.sleep(min(self.retry_s, 2.0))
            finally:
                dev.close()

    def _handle(self, event) -> None:
        key = categorize(event)
        keycode = key.keycode
        name = keycode if isinstance(keycode, str) else (keycode[0] if keycode else "")
        action = map_keycode_name(name) or map_keycode_int(int(event.code))
        if action is None:
            logger.debug("[Keypad] Unmapped key %s", name or f"code={event.code}")
            return
        logger.debug("[Keypad] key -> %s", action.kind)
        self.dispatch(action)
