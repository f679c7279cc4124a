"""
Configuration for the passcode lock.
- LockConfiguration: immutable policy handed to every PasscodeLock.
- ServiceConfig: options for the HTTP service and keypad listener.
- Primary source: options JSON (PASSCODELOCK_OPTIONS, default /data/options.json)
- Fallback: configs/config.yaml (for local dev)
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from passcodelock.errors import ConfigError
from passcodelock.repository import JsonFilePasscodeRepository, PasscodeRepository
from passcodelock.utils import logger

DEFAULT_OPTIONS_PATH = "/data/options.json"
DEFAULT_YAML_PATH = os.path.join("configs", "config.yaml")


# ----------------------------
# Pydantic models (Pydantic v2)
# ----------------------------
class LockConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    repository: PasscodeRepository
    passcode_length: int = Field(4, ge=1)
    allowed_retries: Optional[int] = Field(None, ge=0)    # None = unlimited
    is_touch_id_allowed: bool = True
    should_request_biometrics_immediately: bool = True
    biometrics_reason: str = "Authentication required to proceed"

    @property
    def lockout_threshold(self) -> Optional[int]:
        """Failed-attempt count at which lockout fires; None when unlimited."""
        if self.allowed_retries is None:
            return None
        return max(self.allowed_retries, 1)


class ServiceConfig(BaseModel):
    passcode_length: int = Field(4, ge=1)
    allowed_retries: Optional[int] = Field(5, ge=0)
    touch_id_allowed: bool = True
    request_biometrics_immediately: bool = True
    biometrics_reason: str = "Authentication required to proceed"

    storage_path: str = "/data/passcode.json"
    initial_mode: str = "enter_passcode"   # enter_passcode | set_passcode | change_passcode | remove_passcode

    keypad_source: str = "none"            # "none" | "evdev"
    keypad_device: Optional[str] = None
    log_level: str = "INFO"

    @field_validator("initial_mode")
    @classmethod
    def _known_mode(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in ("enter_passcode", "set_passcode", "change_passcode", "remove_passcode"):
            raise ValueError(f"unknown lock mode: {v!r}")
        return v

    @field_validator("keypad_source")
    @classmethod
    def _known_source(cls, v: str) -> str:
        v = (v or "none").strip().lower()
        if v not in ("none", "evdev"):
            raise ValueError(f"unknown keypad source: {v!r}")
        return v

    def lock_configuration(self, repository: Optional[PasscodeRepository] = None) -> LockConfiguration:
        """Build the lock policy, defaulting to a JSON store at storage_path."""
        repo = repository if repository is not None else JsonFilePasscodeRepository(self.storage_path)
        return LockConfiguration(
            repository=repo,
            passcode_length=self.passcode_length,
            allowed_retries=self.allowed_retries,
            is_touch_id_allowed=self.touch_id_allowed,
            should_request_biometrics_immediately=self.request_biometrics_immediately,
            biometrics_reason=self.biometrics_reason,
        )


# ----------------------------
# Normalization helpers
# ----------------------------
_LEGACY_KEYS = {
    "passcodeLength": "passcode_length",
    "maximum_incorrect_passcode_attempts": "allowed_retries",
    "max_failed_attempts": "allowed_retries",
    "is_touch_id_allowed": "touch_id_allowed",
    "should_request_touch_id_immediately": "request_biometrics_immediately",
    "touch_id_reason": "biometrics_reason",
}


def _normalize_sources(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize raw dict to ServiceConfig keys regardless of source style."""
    norm = dict(raw)

    for old, new in _LEGACY_KEYS.items():
        if old in norm:
            norm.setdefault(new, norm.pop(old))

    # Nested "lock:" block (YAML style)
    if isinstance(norm.get("lock"), dict):
        for k, v in norm.pop("lock").items():
            norm.setdefault(_LEGACY_KEYS.get(k, k), v)

    # Negative retry counts mean unlimited
    retries = norm.get("allowed_retries")
    if isinstance(retries, int) and retries < 0:
        norm["allowed_retries"] = None

    return norm


def _log_summary(cfg: ServiceConfig, source: str) -> None:
    logger.info("[Config] Configuration loaded from %s", source)
    logger.info(
        "[Config] Summary: length=%s, retries=%s, touch_id=%s, immediate=%s, mode=%s, keypad=%s",
        cfg.passcode_length, cfg.allowed_retries, cfg.touch_id_allowed,
        cfg.request_biometrics_immediately, cfg.initial_mode, cfg.keypad_source,
    )
    logger.info("[Config] Storage: %s", cfg.storage_path)


def _build(raw: Dict[str, Any], source: str) -> ServiceConfig:
    try:
        cfg = ServiceConfig(**_normalize_sources(raw))
    except ValidationError as ve:
        msg = f"Configuration validation failed ({source}): {ve}"
        logger.error(msg)
        raise ConfigError(msg) from ve
    _log_summary(cfg, source)
    return cfg


# ----------------------------
# Public API
# ----------------------------
def load_config(path: str | None = None) -> ServiceConfig:
    options_path = os.environ.get("PASSCODELOCK_OPTIONS", DEFAULT_OPTIONS_PATH)
    if path is None and os.path.exists(options_path):
        try:
            with open(options_path, "r", encoding="utf-8") as f:
                raw = json.load(f) or {}
        except (OSError, ValueError) as e:
            msg = f"Failed to parse {options_path}: {e}"
            logger.error(msg)
            raise ConfigError(msg) from e
        return _build(raw, options_path)

    cfg_path = path or DEFAULT_YAML_PATH
    if not os.path.exists(cfg_path):
        msg = f"Configuration file not found: {cfg_path}"
        logger.error(msg)
        raise ConfigError(msg)

    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        msg = f"Failed to read YAML at {cfg_path}: {e}"
        logger.error(msg)
        raise ConfigError(msg) from e
    if not isinstance(raw, dict):
        msg = f"Configuration at {cfg_path} must be a mapping"
        logger.error(msg)
        raise ConfigError(msg)
    return _build(raw, cfg_path)
