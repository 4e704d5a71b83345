# studybuddy/notes_store.py
import json
import os
import tempfile
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from .config import (
    AUTOSAVE_SECONDS,
    MAX_ATTACHMENT_BYTES,
    MAX_IMAGE_BYTES,
    MAX_VOICE_NOTE_BYTES,
    NOTES_FILE,
    SAVE_DEBOUNCE_MS,
)
from .debug import debug_log
from .models import Attachment, HandwrittenNote, Note, VoiceNote


WELCOME_TITLE = "Welcome to Study Buddy! 🎓"
WELCOME_CONTENT = """# Welcome to Study Buddy!

Your AI-powered study companion is ready to help you succeed. Here's what you can do:

## 📝 Notes Features
- **AI-Powered Writing**: summarize your notes and pull out the key points
- **Voice Notes**: record audio notes and play them back
- **Handwriting Import**: attach photos of handwritten notes
- **Smart Organization**: tag and search your notes easily

## 🚀 Getting Started
1. Create a new note
2. Try the AI features
3. Attach files, images, or voice recordings
4. Generate quizzes from your notes

Happy studying! 📚
"""


class ExportFormat(Enum):
    MARKDOWN = "Markdown"
    PDF = "PDF"
    PLAIN_TEXT = "Plain Text"
    RTF = "Rich Text"

    @property
    def file_extension(self) -> str:
        return {
            ExportFormat.MARKDOWN: "md",
            ExportFormat.PDF: "pdf",
            ExportFormat.PLAIN_TEXT: "txt",
            ExportFormat.RTF: "rtf",
        }[self]


def _fmt_date(d: datetime) -> str:
    return d.strftime("%Y-%m-%d %H:%M")


def note_to_markdown(note: Note) -> str:
    md = f"# {note.title}\n\n"
    md += f"*Created: {_fmt_date(note.created_at)}*\n"
    md += f"*Modified: {_fmt_date(note.modified_at)}*\n\n"

    if note.tags:
        md += f"**Tags:** {', '.join(note.tags)}\n\n"

    if note.ai_summary:
        md += f"## AI Summary\n{note.ai_summary}\n\n"

    if note.ai_key_points:
        md += "## Key Points\n"
        for point in note.ai_key_points:
            md += f"- {point}\n"
        md += "\n"

    md += f"## Content\n{note.content}\n"
    return md


class NotesStore(QObject):
    notes_changed = Signal()
    error = Signal(str)

    def __init__(self, path: Optional[Path] = None, autosave: bool = True, parent=None):
        super().__init__(parent)
        self.path = Path(path) if path else NOTES_FILE
        self.notes: List[Note] = []
        self.selected_note: Optional[Note] = None
        self.error_message: Optional[str] = None

        self._save_timer = QTimer(self)
        self._save_timer.setSingleShot(True)
        self._save_timer.setInterval(SAVE_DEBOUNCE_MS)
        self._save_timer.timeout.connect(self.save)

        self._autosave_timer = QTimer(self)
        self._autosave_timer.setInterval(AUTOSAVE_SECONDS * 1000)
        self._autosave_timer.timeout.connect(self.save)

        self._load()
        if autosave:
            self._autosave_timer.start()

    # -- CRUD --------------------------------------------------------------

    def get(self, note_id: str) -> Optional[Note]:
        for note in self.notes:
            if note.id == note_id:
                return note
        return None

    def create_note(self, title: str = "Untitled Note", content: str = "") -> Note:
        note = Note(title=title, content=content)
        self.notes.insert(0, note)
        self.selected_note = note
        self.save()
        self.notes_changed.emit()
        return note

    def delete_note(self, note_id: str) -> None:
        self.notes = [n for n in self.notes if n.id != note_id]
        if self.selected_note and self.selected_note.id == note_id:
            self.selected_note = self.notes[0] if self.notes else None
        self.save()
        self.notes_changed.emit()

    def update_note(self, note: Note) -> bool:
        for i, existing in enumerate(self.notes):
            if existing.id != note.id:
                continue
            note.modified_at = datetime.now()
            self.notes[i] = note
            if self.selected_note and self.selected_note.id == note.id:
                self.selected_note = note
            self._save_timer.start()
            self.notes_changed.emit()
            return True
        return False

    def select(self, note_id: str) -> Optional[Note]:
        self.selected_note = self.get(note_id)
        return self.selected_note

    def filtered_notes(self, search_text: str = "") -> List[Note]:
        needle = (search_text or "").strip().casefold()
        if needle:
            matches = [
                n for n in self.notes
                if needle in n.title.casefold()
                or needle in n.content.casefold()
                or any(needle in t.casefold() for t in n.tags)
            ]
        else:
            matches = list(self.notes)
        return sorted(matches, key=lambda n: n.modified_at, reverse=True)

    # -- attachments -------------------------------------------------------

    def _reject(self, message: str) -> bool:
        self.error_message = message
        debug_log(f"NotesStore: {message}")
        self.error.emit(message)
        return False

    def add_attachment(self, note: Note, file_name: str, file_type: str, data: bytes) -> bool:
        if self.get(note.id) is None:
            return False
        if len(data) >= MAX_ATTACHMENT_BYTES:
            return self._reject("File too large. Maximum size is 10MB.")
        note.attachments.append(Attachment(file_name=file_name, file_type=file_type, data=data))
        return self.update_note(note)

    def remove_attachment(self, note: Note, attachment_id: str) -> bool:
        note.attachments = [a for a in note.attachments if a.id != attachment_id]
        return self.update_note(note)

    def add_voice_note(self, note: Note, audio_data: bytes, duration: float) -> bool:
        if self.get(note.id) is None:
            return False
        if len(audio_data) >= MAX_VOICE_NOTE_BYTES:
            return self._reject("Audio recording too large. Maximum size is 5MB.")
        note.voice_notes.append(VoiceNote(audio_data=audio_data, duration=duration))
        return self.update_note(note)

    def add_handwritten_note(self, note: Note, image_data: bytes) -> bool:
        if self.get(note.id) is None:
            return False
        if len(image_data) >= MAX_IMAGE_BYTES:
            return self._reject("Image too large. Maximum size is 5MB.")
        note.handwritten_images.append(HandwrittenNote(image_data=image_data))
        return self.update_note(note)

    def apply_summary(self, note: Note, summary: str, key_points: List[str]) -> bool:
        note.ai_summary = summary
        note.ai_key_points = list(key_points)
        return self.update_note(note)

    # -- export ------------------------------------------------------------

    def export_note(self, note: Note, fmt: ExportFormat) -> Optional[bytes]:
        if fmt is ExportFormat.MARKDOWN:
            return note_to_markdown(note).encode("utf-8")
        if fmt is ExportFormat.PLAIN_TEXT:
            return note.content.encode("utf-8")
        # PDF / RTF need a document renderer
        return None

    # -- persistence -------------------------------------------------------

    def save(self) -> bool:
        self._save_timer.stop()
        payload = json.dumps([n.to_dict() for n in self.notes], ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".notes-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, self.path)
        except OSError as e:
            self.error_message = f"Failed to save notes: {e}"
            debug_log(self.error_message)
            self.error.emit(self.error_message)
            return False
        debug_log(f"NotesStore: saved {len(self.notes)} notes to {self.path}")
        return True

    def flush(self) -> None:
        """Write any pending debounced save now."""
        if self._save_timer.isActive():
            self.save()

    def close(self) -> None:
        self._autosave_timer.stop()
        self.flush()

    def _load(self) -> None:
        if not self.path.exists():
            self._create_welcome_note()
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self.notes = [Note.from_dict(d) for d in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            self.error_message = f"Failed to load notes: {e}"
            debug_log(self.error_message)
            self._create_welcome_note()
            return

        self.selected_note = self.notes[0] if self.notes else None
        debug_log(f"NotesStore: loaded {len(self.notes)} notes from {self.path}")

    def _create_welcome_note(self) -> None:
        welcome = Note(title=WELCOME_TITLE, content=WELCOME_CONTENT)
        self.notes = [welcome]
        self.selected_note = welcome
        self.save()
