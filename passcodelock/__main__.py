from __future__ import annotations

import os

import uvicorn


def main() -> None:
    host = os.environ.get("PASSCODELOCK_HOST", "0.0.0.0")
    port = int(os.environ.get("PASSCODELOCK_PORT", "8099"))
    uvicorn.run("passcodelock.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
