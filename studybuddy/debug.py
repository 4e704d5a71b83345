# studybuddy/debug.py
import os
import time

from .config import DEBUG_LOG


def debug_enabled() -> bool:
    return os.getenv("SB_DEBUG", "").strip() in {"1", "true", "yes", "on"}


def debug_log(message: str) -> None:
    if not debug_enabled():
        return

    ts = time.strftime("%Y-%m-%d %H:%M:%S")
    line = f"[{ts}] {message}\n"
    try:
        DEBUG_LOG.parent.mkdir(parents=True, exist_ok=True)
        with DEBUG_LOG.open("a", encoding="utf-8") as f:
            f.write(line)
    except OSError:
        pass

    print(f"[DEBUG] {message}")
