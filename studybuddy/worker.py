# studybuddy/worker.py
from PySide6.QtCore import QThread, Signal

from .ai_client import AIClient, AIServiceError
from .debug import debug_log
from .models import ExplanationLevel, Note


class AIWorker(QThread):
    """
    Runs one blocking AI job off the UI thread.

    jobs: "summarize" -> (summary, key_points)
          "quiz"      -> Quiz
          "proofread" -> AIProcessingResult
          "explain"   -> str

    The job's outcome is published as result_ready or failed; QThread's own
    finished signal still fires afterwards in both cases.
    """
    status = Signal(str)
    result_ready = Signal(object)
    failed = Signal(str)

    JOBS = ("summarize", "quiz", "proofread", "explain")

    def __init__(
        self,
        client: AIClient,
        job: str,
        note: Note,
        question_count: int = 5,
        level: ExplanationLevel = ExplanationLevel.INTERMEDIATE,
        parent=None,
    ):
        super().__init__(parent)
        if job not in self.JOBS:
            raise ValueError(f"unknown AI job: {job}")
        self.client = client
        self.job = job
        self.note = note
        self.question_count = question_count
        self.level = level

    def _do_job(self):
        if self.job == "summarize":
            self.status.emit(f"Summarizing “{self.note.title}”…")
            summary = self.client.summarize(self.note.content)
            return summary, self.client.extract_key_points(self.note.content)
        if self.job == "quiz":
            self.status.emit(f"Generating quiz for “{self.note.title}”…")
            return self.client.generate_quiz(self.note, self.question_count)
        if self.job == "proofread":
            self.status.emit(f"Proofreading “{self.note.title}”…")
            return self.client.proofread(self.note.content)
        self.status.emit(f"Explaining “{self.note.title}” ({self.level.value})…")
        return self.client.explain(self.note.content, self.level)

    def run(self):
        if not self.client.is_available():
            self.failed.emit("AI model unavailable")
            return

        try:
            result = self._do_job()
        except AIServiceError as e:
            debug_log(f"AIWorker {self.job} failed: {e}")
            self.failed.emit(str(e))
            return

        self.status.emit("Done ✅")
        self.result_ready.emit(result)
