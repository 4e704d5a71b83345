# studybuddy/ai_client.py
import json
import re
from typing import List, Optional

import requests

from .config import AI_API_KEY, AI_BASE_URL, AI_MODEL, AI_TIMEOUT
from .debug import debug_log
from .models import (
    AIProcessingResult,
    ExplanationLevel,
    MistakeType,
    Note,
    QuestionType,
    Quiz,
    QuizQuestion,
    TranslatedContent,
    WritingMistake,
)


DEFAULT_INSTRUCTIONS = "You are an intelligent study assistant that helps students learn effectively."

LANGUAGES = ("en", "es", "fr", "de", "it", "pt", "ru", "ja", "ko", "zh", "ar", "hi")

_BULLET = re.compile(r"^\s*(?:[•\-*]|\d+[.)])\s+(.*\S)\s*$")
_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class AIServiceError(Exception):
    pass


def parse_key_points(text: str) -> List[str]:
    points = []
    for line in (text or "").splitlines():
        m = _BULLET.match(line)
        if m:
            points.append(m.group(1))
    if points:
        return points
    text = (text or "").strip()
    return [text] if text else []


def parse_mistakes(response: str, original_text: str = "") -> List[WritingMistake]:
    """Lines of proofreading feedback that mention grammar or spelling."""
    mistakes = []
    for line in (response or "").splitlines():
        lower = line.lower()
        if "grammar" not in lower and "spelling" not in lower:
            continue
        kind = MistakeType.SPELLING if "grammar" not in lower else MistakeType.GRAMMAR
        mistakes.append(WritingMistake(
            type=kind,
            location=(0, min(10, len(original_text))),
            description=line.strip(),
            suggestion="See AI feedback for details",
        ))
    return mistakes


def parse_suggestions(response: str, limit: int = 5) -> List[str]:
    lines = [line.strip() for line in (response or "").splitlines()]
    return [line for line in lines if line][:limit]


def _question_type(value: str) -> QuestionType:
    v = (value or "").strip().lower()
    for qt in QuestionType:
        if qt.value.lower() == v or qt.name.lower() == v.replace(" ", "_").replace("/", "_"):
            return qt
    if "true" in v:
        return QuestionType.TRUE_FALSE
    if "choice" in v:
        return QuestionType.MULTIPLE_CHOICE
    if "blank" in v:
        return QuestionType.FILL_IN_BLANK
    return QuestionType.SHORT_ANSWER


def parse_quiz_questions(text: str) -> List[QuizQuestion]:
    """
    Accepts either a JSON array of question objects or an object with a
    "questions" key. Anything unparseable yields one generic short-answer
    question so the quiz is never empty.
    """
    raw = _FENCE.sub("", (text or "").strip())
    questions: List[QuizQuestion] = []
    try:
        data = json.loads(raw)
    except ValueError:
        data = None

    if isinstance(data, dict):
        data = data.get("questions")

    if isinstance(data, list):
        for item in data:
            if not isinstance(item, dict) or not item.get("question"):
                continue
            options = [str(o) for o in item.get("options") or []]
            qtype = _question_type(str(item.get("type", "")))
            if not item.get("type"):
                qtype = QuestionType.MULTIPLE_CHOICE if options else QuestionType.TRUE_FALSE
            questions.append(QuizQuestion(
                question=str(item["question"]).strip(),
                type=qtype,
                options=options,
                correct_answer=str(item.get("correct_answer") or item.get("answer") or ""),
                explanation=item.get("explanation") or "Based on the provided content",
            ))

    if not questions:
        questions = [QuizQuestion(
            question="What is the main topic of this content?",
            type=QuestionType.SHORT_ANSWER,
            correct_answer="See notes for details",
            explanation="Review the main content",
        )]
    return questions


class AIClient:
    """
    Chat-completions client for an OpenAI-compatible endpoint.
    """

    def __init__(
        self,
        base_url: str = AI_BASE_URL,
        model: str = AI_MODEL,
        api_key: str = AI_API_KEY,
        timeout: int = AI_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self._http = session or requests.Session()

    def is_available(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def complete(self, prompt: str, instructions: Optional[str] = None) -> str:
        if not self.is_available():
            raise AIServiceError("AI model unavailable (SB_AI_BASE_URL not set)")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": instructions or DEFAULT_INSTRUCTIONS},
                {"role": "user", "content": prompt},
            ],
        }
        url = f"{self.base_url}/chat/completions"
        try:
            r = self._http.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
            content = data["choices"][0]["message"]["content"]
        except requests.RequestException as e:
            debug_log(f"AIClient: request failed: {e}")
            raise AIServiceError(f"AI request failed: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            debug_log(f"AIClient: bad response: {e}")
            raise AIServiceError(f"Unexpected AI response: {e}") from e

        return (content or "").strip()

    def summarize(self, text: str) -> str:
        instructions = (
            "You are an expert at creating concise, informative summaries.\n"
            "Create summaries that capture the key points and main ideas while being easy to understand."
        )
        prompt = (
            "Please create a concise summary of the following text.\n"
            "Focus on the main ideas and key points:\n\n"
            f"{text}"
        )
        return self.complete(prompt, instructions)

    def extract_key_points(self, text: str) -> List[str]:
        instructions = (
            "You are expert at identifying key points and main ideas in text.\n"
            "Extract the most important points as a bulleted list.\n"
            "Each point should be concise and capture a core idea."
        )
        prompt = (
            "Extract the key points from this text as a bulleted list:\n\n"
            f"{text}\n\n"
            "Format each point as:\n• [key point]"
        )
        return parse_key_points(self.complete(prompt, instructions))

    def generate_quiz(self, note: Note, question_count: int = 5) -> Quiz:
        instructions = (
            "You are an expert educator who creates engaging and educational quizzes.\n"
            "Create diverse question types that test understanding, not just memorization.\n"
            "Include clear, unambiguous questions with plausible distractors for multiple choice."
        )
        types = ", ".join(f'"{qt.value}"' for qt in QuestionType)
        prompt = (
            f"Create a quiz with {question_count} questions based on this content:\n\n"
            f"{note.content}\n\n"
            "Reply with only a JSON array. Each element must have the keys "
            '"question", "type" (one of ' + types + '), "options" (4 strings for '
            'multiple choice, otherwise empty), "correct_answer" and "explanation".'
        )
        questions = parse_quiz_questions(self.complete(prompt, instructions))
        return Quiz(title=f"Quiz: {note.title}", questions=questions, source_note_id=note.id)

    def translate(self, text: str, source_language: str, target_language: str) -> TranslatedContent:
        instructions = (
            "You are a professional translator with expertise in multiple languages.\n"
            "Provide accurate, contextually appropriate translations that preserve the original meaning and tone."
        )
        prompt = (
            f"Translate the following text from {source_language} to {target_language}:\n\n"
            f"{text}\n\n"
            "Provide only the translation without additional commentary."
        )
        return TranslatedContent(
            original_language=source_language,
            target_language=target_language,
            translated_text=self.complete(prompt, instructions),
        )

    def proofread(self, text: str) -> AIProcessingResult:
        instructions = (
            "You are a professional proofreader and writing assistant. Analyze the given text for:\n"
            "1. Grammar and spelling errors\n"
            "2. Clarity and readability issues\n"
            "3. Style improvements\n"
            "4. Tone consistency\n\n"
            "Provide specific, actionable feedback."
        )
        prompt = (
            "Please proofread and analyze this text:\n\n"
            f"{text}\n\n"
            "Provide:\n"
            "1. A brief summary of the text quality\n"
            "2. Key areas for improvement\n"
            "3. Specific suggestions for enhancement\n"
            "4. Any grammar or spelling mistakes found"
        )
        response = self.complete(prompt, instructions)
        return AIProcessingResult(
            summary="Text analysis completed successfully",
            key_points=["Grammar check complete", "Style analysis provided"],
            suggestions=parse_suggestions(response),
            mistakes=parse_mistakes(response, text),
        )

    def explain(self, text: str, level: ExplanationLevel = ExplanationLevel.INTERMEDIATE) -> str:
        instructions = (
            "You are an educational expert who excels at explaining complex topics.\n"
            f"{level.instructions}\n"
            "Use clear examples and analogies where helpful."
        )
        return self.complete(f"Please explain the following text:\n\n{text}", instructions)

    def detect_language(self, text: str) -> str:
        """ISO 639-1 code of `text`; "en" when unsure or the service is down."""
        if not self.is_available():
            return "en"
        prompt = (
            "Detect the language of this text and respond with only the "
            "ISO 639-1 language code (e.g., 'en', 'es', 'fr'):\n\n"
            f'"{text}"'
        )
        try:
            code = self.complete(prompt, "You are a language detection expert.").strip().strip(".'\"").lower()
        except AIServiceError:
            return "en"
        return code if code in LANGUAGES else "en"
