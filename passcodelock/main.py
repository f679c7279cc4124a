# -*- coding: utf-8 -*-
"""
HTTP service around one passcode-lock session.
- Every request (and every keypad action) runs under one process lock, so the
  lock core only ever sees one caller at a time.
- Biometric prompts are queued and answered via /lock/biometrics/resolve.
"""

from __future__ import annotations

import os
import threading
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
from starlette.requests import Request
from starlette.responses import JSONResponse

from passcodelock.biometrics import ApprovalQueueBiometrics
from passcodelock.config import DEFAULT_OPTIONS_PATH, DEFAULT_YAML_PATH, ServiceConfig, load_config
from passcodelock.controller import PasscodeLockController
from passcodelock.errors import (
    BufferFullError,
    EmptyBufferError,
    InvalidSignError,
    NotCancellableError,
    PasscodeLockError,
    RepositoryError,
)
from passcodelock.keypad import BIOMETRICS, CANCEL, DELETE, SIGN, KeypadAction, KeypadListener
from passcodelock.repository import PasscodeRepository
from passcodelock.states import LockMode
from passcodelock.utils import logger, set_log_level

app = FastAPI(title="Passcode Lock API", version="1.0.0")


# ----------------------- Session -------------------------
class LockService:
    """Holds the active controller and serializes access to it."""

    def __init__(
        self,
        config: ServiceConfig,
        *,
        repository: Optional[PasscodeRepository] = None,
        biometrics: Optional[ApprovalQueueBiometrics] = None,
    ) -> None:
        self.config = config
        self.lock_configuration = config.lock_configuration(repository)
        self.biometrics = biometrics or ApprovalQueueBiometrics()
        self.mutex = threading.RLock()
        self.keypad: Optional[KeypadListener] = None
        self.controller = self.start(config.initial_mode)

    def start(self, mode: LockMode | str) -> PasscodeLockController:
        with self.mutex:
            self.biometrics.clear()
            self.controller = PasscodeLockController(mode, self.lock_configuration, self.biometrics)
            logger.info("[API] Started %s flow", LockMode(mode).value)
            self.controller.appear()
            return self.controller

    def dispatch_keypad(self, action: KeypadAction) -> None:
        with self.mutex:
            ctl = self.controller
            try:
                if action.kind == SIGN and action.sign is not None:
                    ctl.sign_tapped(action.sign)
                elif action.kind == DELETE:
                    ctl.delete_tapped()
                elif action.kind == CANCEL:
                    ctl.cancel_tapped()
                elif action.kind == BIOMETRICS:
                    ctl.touch_id_tapped()
            except PasscodeLockError as e:
                logger.warning("[Keypad] Action %s rejected: %s", action.kind, e)

    def start_keypad_listener(self) -> None:
        if self.config.keypad_source != "evdev":
            return
        self.keypad = KeypadListener(self.dispatch_keypad, self.config.keypad_device)
        self.keypad.start()


SERVICE: Optional[LockService] = None


def _load_service_config() -> ServiceConfig:
    options_path = os.environ.get("PASSCODELOCK_OPTIONS", DEFAULT_OPTIONS_PATH)
    yaml_path = os.environ.get("PASSCODELOCK_CONFIG", DEFAULT_YAML_PATH)
    if not os.path.exists(options_path) and not os.path.exists(yaml_path):
        logger.info("[API] No configuration file found; using defaults")
        return ServiceConfig()
    return load_config(None if os.path.exists(options_path) else yaml_path)


def get_service() -> LockService:
    global SERVICE
    if SERVICE is None:
        cfg = _load_service_config()
        set_log_level(cfg.log_level)
        SERVICE = LockService(cfg)
    return SERVICE


def _snapshot(svc: LockService, **extra) -> dict:
    body = {"ok": True, "lock": svc.controller.snapshot()}
    body.update(extra)
    return body


# ----------------------- Errors --------------------------
@app.exception_handler(PasscodeLockError)
def _lock_error_handler(request: Request, exc: PasscodeLockError):
    if isinstance(exc, RepositoryError):
        status, detail = 503, "STORAGE_UNAVAILABLE"
    elif isinstance(exc, InvalidSignError):
        status, detail = 400, "INVALID_SIGN"
    elif isinstance(exc, BufferFullError):
        status, detail = 409, "BUFFER_FULL"
    elif isinstance(exc, EmptyBufferError):
        status, detail = 409, "BUFFER_EMPTY"
    elif isinstance(exc, NotCancellableError):
        status, detail = 409, "NOT_CANCELLABLE"
    else:
        status, detail = 409, "LOCK_ERROR"
    logger.warning("[API] %s %s -> %s: %s", request.method, request.url.path, detail, exc)
    return JSONResponse({"ok": False, "error": detail, "message": str(exc)}, status_code=status)


# ----------------------- Models & API --------------------
class StartRequest(BaseModel):
    mode: LockMode = LockMode.ENTER_PASSCODE


class SignRequest(BaseModel):
    sign: str = Field(..., pattern="^[0-9]$")


class ResolveRequest(BaseModel):
    approved: bool


@app.on_event("startup")
def on_start():
    svc = get_service()
    svc.start_keypad_listener()
    logger.info("[API] Passcode lock API started.")


@app.on_event("shutdown")
def on_stop():
    if SERVICE is not None and SERVICE.keypad is not None:
        SERVICE.keypad.stop()


@app.get("/ping")
def ping():
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


@app.get("/passcode")
def passcode_status():
    svc = get_service()
    with svc.mutex:
        repo = svc.lock_configuration.repository
        return {"ok": True, "has_passcode": repo.has_passcode(), "failed_attempts": repo.failed_attempts}


@app.get("/lock")
def lock_view():
    svc = get_service()
    with svc.mutex:
        return _snapshot(svc)


@app.post("/lock/start")
def lock_start(req: StartRequest):
    svc = get_service()
    with svc.mutex:
        svc.start(req.mode)
        return _snapshot(svc)


@app.post("/lock/sign")
def lock_sign(req: SignRequest):
    svc = get_service()
    with svc.mutex:
        accepted = svc.controller.sign_tapped(req.sign)
        return _snapshot(svc, accepted=accepted)


@app.post("/lock/delete")
def lock_delete():
    svc = get_service()
    with svc.mutex:
        accepted = svc.controller.delete_tapped()
        return _snapshot(svc, accepted=accepted)


@app.post("/lock/cancel")
def lock_cancel():
    svc = get_service()
    with svc.mutex:
        if not svc.controller.cancel_tapped():
            raise HTTPException(status_code=409, detail="NOT_CANCELLABLE")
        return _snapshot(svc)


@app.post("/lock/feedback-finished")
def lock_feedback_finished():
    svc = get_service()
    with svc.mutex:
        svc.controller.error_feedback_finished()
        return _snapshot(svc)


@app.post("/lock/biometrics")
def lock_biometrics():
    svc = get_service()
    with svc.mutex:
        svc.controller.touch_id_tapped()
        return _snapshot(svc, pending=svc.biometrics.pending)


@app.post("/lock/biometrics/resolve")
def lock_biometrics_resolve(req: ResolveRequest):
    svc = get_service()
    with svc.mutex:
        if not svc.biometrics.resolve(req.approved):
            raise HTTPException(status_code=409, detail="NO_PENDING_REQUEST")
        return _snapshot(svc, pending=svc.biometrics.pending)


@app.post("/lock/foreground")
def lock_foreground():
    svc = get_service()
    with svc.mutex:
        svc.controller.app_will_enter_foreground()
        return _snapshot(svc, pending=svc.biometrics.pending)


@app.post("/lock/background")
def lock_background():
    svc = get_service()
    with svc.mutex:
        svc.controller.app_did_enter_background()
        return _snapshot(svc)


@app.get("/lock/events")
def lock_events(limit: int = Query(50, ge=1, le=100)):
    svc = get_service()
    with svc.mutex:
        items = list(svc.controller.events)[-limit:]
        return {"ok": True, "items": items}
