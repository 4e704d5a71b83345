# studybuddy/config.py
import os
import sys
from pathlib import Path


def _default_data_dir() -> Path:
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "StudyBuddy"
    return Path.home() / ".studybuddy"


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "") or default)
    except ValueError:
        return default


DATA_DIR = Path(os.getenv("SB_DATA_DIR") or _default_data_dir())
NOTES_FILE = DATA_DIR / "notes.json"
GOALS_FILE = DATA_DIR / "goals.json"
DEBUG_LOG = Path(os.getenv("SB_DEBUG_LOG") or DATA_DIR / "studybuddy_debug.log")

# Playback clock cadence (~10Hz)
POLL_INTERVAL_MS = _int_env("SB_POLL_INTERVAL_MS", 100)

AUTOSAVE_SECONDS = _int_env("SB_AUTOSAVE_SECONDS", 30)
SAVE_DEBOUNCE_MS = 500

MAX_ATTACHMENT_BYTES = 10_000_000
MAX_VOICE_NOTE_BYTES = 5_000_000
MAX_IMAGE_BYTES = 5_000_000

AI_BASE_URL = os.getenv("SB_AI_BASE_URL", "").strip().rstrip("/")
AI_MODEL = os.getenv("SB_AI_MODEL", "gpt-4o-mini").strip()
AI_API_KEY = os.getenv("SB_AI_API_KEY", "").strip()
AI_TIMEOUT = _int_env("SB_AI_TIMEOUT", 30)
