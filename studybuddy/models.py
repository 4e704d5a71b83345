# studybuddy/models.py
import base64
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple


def _now() -> datetime:
    return datetime.now()


def _new_id() -> str:
    return str(uuid.uuid4())


def _b64(data: Optional[bytes]) -> Optional[str]:
    if data is None:
        return None
    return base64.b64encode(data).decode("ascii")


def _unb64(value: Optional[str]) -> Optional[bytes]:
    if value is None:
        return None
    return base64.b64decode(value)


@dataclass(frozen=True)
class PlaybackState:
    is_playing: bool = False
    current_time: float = 0.0
    duration: float = 0.0


@dataclass
class Attachment:
    file_name: str
    file_type: str  # MIME type, e.g. "application/pdf"
    data: bytes
    thumbnail: Optional[bytes] = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "file_name": self.file_name,
            "file_type": self.file_type,
            "data": _b64(self.data),
            "thumbnail": _b64(self.thumbnail),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Attachment":
        return cls(
            id=d["id"],
            file_name=d["file_name"],
            file_type=d.get("file_type", "application/octet-stream"),
            data=_unb64(d["data"]) or b"",
            thumbnail=_unb64(d.get("thumbnail")),
        )


@dataclass
class TranslatedContent:
    original_language: str
    target_language: str
    translated_text: str

    def to_dict(self) -> dict:
        return {
            "original_language": self.original_language,
            "target_language": self.target_language,
            "translated_text": self.translated_text,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TranslatedContent":
        return cls(d["original_language"], d["target_language"], d["translated_text"])


@dataclass
class VoiceNote:
    audio_data: bytes
    duration: float  # seconds
    transcript: Optional[str] = None
    translated_transcript: Optional[TranslatedContent] = None
    created_at: datetime = field(default_factory=_now)
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "audio_data": _b64(self.audio_data),
            "duration": self.duration,
            "transcript": self.transcript,
            "translated_transcript": (
                self.translated_transcript.to_dict() if self.translated_transcript else None
            ),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "VoiceNote":
        translated = d.get("translated_transcript")
        return cls(
            id=d["id"],
            audio_data=_unb64(d["audio_data"]) or b"",
            duration=float(d.get("duration", 0.0)),
            transcript=d.get("transcript"),
            translated_transcript=TranslatedContent.from_dict(translated) if translated else None,
            created_at=datetime.fromisoformat(d["created_at"]),
        )


@dataclass
class HandwrittenNote:
    image_data: Optional[bytes]
    recognized_text: Optional[str] = None
    smudge_detected: bool = False
    enhanced_image_data: Optional[bytes] = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "image_data": _b64(self.image_data),
            "recognized_text": self.recognized_text,
            "smudge_detected": self.smudge_detected,
            "enhanced_image_data": _b64(self.enhanced_image_data),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "HandwrittenNote":
        return cls(
            id=d["id"],
            image_data=_unb64(d.get("image_data")),
            recognized_text=d.get("recognized_text"),
            smudge_detected=bool(d.get("smudge_detected", False)),
            enhanced_image_data=_unb64(d.get("enhanced_image_data")),
        )


@dataclass
class Note:
    title: str = "Untitled Note"
    content: str = ""
    created_at: datetime = field(default_factory=_now)
    modified_at: datetime = field(default_factory=_now)
    tags: List[str] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    voice_notes: List[VoiceNote] = field(default_factory=list)
    handwritten_images: List[HandwrittenNote] = field(default_factory=list)
    ai_summary: Optional[str] = None
    ai_key_points: List[str] = field(default_factory=list)
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat(),
            "tags": list(self.tags),
            "attachments": [a.to_dict() for a in self.attachments],
            "voice_notes": [v.to_dict() for v in self.voice_notes],
            "handwritten_images": [h.to_dict() for h in self.handwritten_images],
            "ai_summary": self.ai_summary,
            "ai_key_points": list(self.ai_key_points),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Note":
        return cls(
            id=d["id"],
            title=d.get("title", "Untitled Note"),
            content=d.get("content", ""),
            created_at=datetime.fromisoformat(d["created_at"]),
            modified_at=datetime.fromisoformat(d["modified_at"]),
            tags=list(d.get("tags", [])),
            attachments=[Attachment.from_dict(a) for a in d.get("attachments", [])],
            voice_notes=[VoiceNote.from_dict(v) for v in d.get("voice_notes", [])],
            handwritten_images=[HandwrittenNote.from_dict(h) for h in d.get("handwritten_images", [])],
            ai_summary=d.get("ai_summary"),
            ai_key_points=list(d.get("ai_key_points", [])),
        )


class QuestionType(Enum):
    MULTIPLE_CHOICE = "Multiple Choice"
    TRUE_FALSE = "True/False"
    SHORT_ANSWER = "Short Answer"
    FILL_IN_BLANK = "Fill in the Blank"


@dataclass
class QuizQuestion:
    question: str
    type: QuestionType
    options: List[str] = field(default_factory=list)
    correct_answer: str = ""
    explanation: Optional[str] = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "type": self.type.value,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "QuizQuestion":
        return cls(
            id=d["id"],
            question=d["question"],
            type=QuestionType(d.get("type", QuestionType.SHORT_ANSWER.value)),
            options=list(d.get("options", [])),
            correct_answer=d.get("correct_answer", ""),
            explanation=d.get("explanation"),
        )


@dataclass
class Quiz:
    title: str
    questions: List[QuizQuestion]
    source_note_id: str
    created_at: datetime = field(default_factory=_now)
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "questions": [q.to_dict() for q in self.questions],
            "source_note_id": self.source_note_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Quiz":
        return cls(
            id=d["id"],
            title=d.get("title", "Quiz"),
            questions=[QuizQuestion.from_dict(q) for q in d.get("questions", [])],
            source_note_id=d["source_note_id"],
            created_at=datetime.fromisoformat(d["created_at"]),
        )


# --- writing feedback ---

class MistakeType(Enum):
    GRAMMAR = "grammar"
    SPELLING = "spelling"
    CLARITY = "clarity"
    CONCISENESS = "conciseness"
    FACTUAL = "factual"


@dataclass
class WritingMistake:
    type: MistakeType
    location: Tuple[int, int]  # (start, length) in the checked text
    description: str
    suggestion: str
    id: str = field(default_factory=_new_id)


@dataclass
class AIProcessingResult:
    summary: Optional[str] = None
    key_points: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    mistakes: List[WritingMistake] = field(default_factory=list)


class ExplanationLevel(Enum):
    ELEMENTARY = "Elementary"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

    @property
    def instructions(self) -> str:
        return {
            ExplanationLevel.ELEMENTARY: (
                "Explain this in simple terms suitable for a middle school student. "
                "Use everyday language and basic concepts."
            ),
            ExplanationLevel.INTERMEDIATE: (
                "Provide a clear explanation suitable for a high school or early college student. "
                "Include some technical detail."
            ),
            ExplanationLevel.ADVANCED: (
                "Give a comprehensive explanation with technical depth "
                "suitable for advanced students or professionals."
            ),
        }[self]


# --- daily goals ---

@dataclass
class Goal:
    title: str
    description: str = ""
    icon: str = "target"
    color: str = "blue"
    target_count: int = 1
    current_count: int = 0
    reminder_time: Optional[datetime] = None
    created_at: datetime = field(default_factory=_now)
    completed_dates: List[datetime] = field(default_factory=list)
    is_default: bool = False
    id: str = field(default_factory=_new_id)

    @property
    def progress(self) -> float:
        if self.target_count <= 0:
            return 0.0
        return self.current_count / self.target_count

    def completed_on(self, day: date) -> bool:
        return any(d.date() == day for d in self.completed_dates)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "target_count": self.target_count,
            "current_count": self.current_count,
            "reminder_time": self.reminder_time.isoformat() if self.reminder_time else None,
            "created_at": self.created_at.isoformat(),
            "completed_dates": [d.isoformat() for d in self.completed_dates],
            "is_default": self.is_default,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Goal":
        reminder = d.get("reminder_time")
        return cls(
            id=d["id"],
            title=d["title"],
            description=d.get("description", ""),
            icon=d.get("icon", "target"),
            color=d.get("color", "blue"),
            target_count=int(d.get("target_count", 1)),
            current_count=int(d.get("current_count", 0)),
            reminder_time=datetime.fromisoformat(reminder) if reminder else None,
            created_at=datetime.fromisoformat(d["created_at"]),
            completed_dates=[datetime.fromisoformat(s) for s in d.get("completed_dates", [])],
            is_default=bool(d.get("is_default", False)),
        )


@dataclass
class Achievement:
    title: str
    description: str
    icon: str
    is_unlocked: bool = False
    progress: float = 0.0
    unlocked_at: Optional[datetime] = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "is_unlocked": self.is_unlocked,
            "progress": self.progress,
            "unlocked_at": self.unlocked_at.isoformat() if self.unlocked_at else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Achievement":
        unlocked_at = d.get("unlocked_at")
        return cls(
            id=d["id"],
            title=d["title"],
            description=d.get("description", ""),
            icon=d.get("icon", ""),
            is_unlocked=bool(d.get("is_unlocked", False)),
            progress=float(d.get("progress", 0.0)),
            unlocked_at=datetime.fromisoformat(unlocked_at) if unlocked_at else None,
        )
