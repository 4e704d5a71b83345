"""
Tests for the studybuddy console entry point.
"""
import signal

import pytest

import main as cli
from studybuddy.models import AIProcessingResult, MistakeType, WritingMistake
from studybuddy.playback import PlaybackController


@pytest.fixture
def notes_file(tmp_path):
    return str(tmp_path / "notes.json")


def _run(notes_file, *args):
    return cli.main(["--notes-file", notes_file, *args])


def test_new_then_list(qapp, notes_file, capsys):
    assert _run(notes_file, "new", "Organic Chemistry", "--content", "alkanes") == 0
    capsys.readouterr()

    assert _run(notes_file, "list", "--search", "organic") == 0

    out = capsys.readouterr().out
    assert "Organic Chemistry" in out
    assert "Welcome" not in out


def test_export_markdown_to_stdout(qapp, notes_file, capsys):
    _run(notes_file, "new", "Physics", "--content", "F = ma")
    out = capsys.readouterr().out
    note_id = out.split("Created ")[1].split(":")[0]

    assert _run(notes_file, "export", note_id, "--format", "md") == 0

    md = capsys.readouterr().out
    assert md.startswith("# Physics\n")
    assert "F = ma" in md


def test_export_unknown_note(qapp, notes_file, capsys):
    assert _run(notes_file, "export", "zzzzzzzz") == 1


def test_play_garbage_file_fails_cleanly(qapp, notes_file, tmp_path, capsys):
    bad = tmp_path / "bad.m4a"
    bad.write_bytes(b"garbage" * 50)

    assert _run(notes_file, "play", "--file", str(bad)) == 1
    assert "Playback failed" in capsys.readouterr().out


def test_summarize_without_ai_endpoint(qapp, notes_file, capsys, monkeypatch):
    _run(notes_file, "new", "Bio")
    note_id = capsys.readouterr().out.split("Created ")[1].split(":")[0]

    class Offline:
        def is_available(self):
            return False

    monkeypatch.setattr(cli, "AIClient", Offline)
    assert _run(notes_file, "summarize", note_id) == 1
    assert "SB_AI_BASE_URL" in capsys.readouterr().out


def _new_note(notes_file, capsys, title="Bio", content="Cells divide."):
    _run(notes_file, "new", title, "--content", content)
    return capsys.readouterr().out.split("Created ")[1].split(":")[0]


class Online:
    def is_available(self):
        return True

    def summarize(self, text):
        return f"summary of {text}"

    def extract_key_points(self, text):
        return ["mitosis", "meiosis"]

    def proofread(self, text):
        return AIProcessingResult(
            summary="Text analysis completed successfully",
            suggestions=["Use active voice."],
            mistakes=[WritingMistake(MistakeType.SPELLING, (0, 5), "Spelling: cels", "See AI feedback for details")],
        )


def test_summarize_runs_on_worker_and_saves(qapp, notes_file, capsys, monkeypatch):
    note_id = _new_note(notes_file, capsys)
    monkeypatch.setattr(cli, "AIClient", Online)

    assert _run(notes_file, "summarize", note_id) == 0

    out = capsys.readouterr().out
    assert "[AI] Summarizing" in out
    assert "summary of Cells divide." in out
    assert "- meiosis" in out

    _run(notes_file, "export", note_id)
    assert "## AI Summary\nsummary of Cells divide." in capsys.readouterr().out


def test_proofread_prints_suggestions_and_mistakes(qapp, notes_file, capsys, monkeypatch):
    note_id = _new_note(notes_file, capsys)
    monkeypatch.setattr(cli, "AIClient", Online)

    assert _run(notes_file, "proofread", note_id) == 0

    out = capsys.readouterr().out
    assert "- Use active voice." in out
    assert "! [spelling] Spelling: cels" in out


def test_worker_failure_is_reported(qapp, notes_file, capsys, monkeypatch):
    from studybuddy.ai_client import AIServiceError

    class Broken(Online):
        def generate_quiz(self, note, count):
            raise AIServiceError("AI request failed: 503")

    note_id = _new_note(notes_file, capsys)
    monkeypatch.setattr(cli, "AIClient", Broken)

    assert _run(notes_file, "quiz", note_id) == 1
    assert "[AI] AI request failed: 503" in capsys.readouterr().out


def test_goals_add_done_and_list(qapp, notes_file, tmp_path, capsys):
    goals_file = str(tmp_path / "goals.json")

    assert _run(notes_file, "goals", "--goals-file", goals_file, "add", "Flashcards", "--target", "2") == 0
    goal_id = capsys.readouterr().out.split("Added ")[1].split(":")[0]

    assert _run(notes_file, "goals", "--goals-file", goals_file, "done", goal_id) == 0
    assert "Flashcards: 1/2" in capsys.readouterr().out

    assert _run(notes_file, "goals", "--goals-file", goals_file) == 0
    out = capsys.readouterr().out
    assert "Exercise" in out
    assert "Flashcards  1/2" in out
    assert "* First Goal" in out


def test_goals_default_cannot_be_deleted(qapp, notes_file, tmp_path, capsys):
    goals_file = str(tmp_path / "goals.json")
    _run(notes_file, "goals", "--goals-file", goals_file)
    exercise_id = capsys.readouterr().out.split("] ")[1].split(" ")[0]

    assert _run(notes_file, "goals", "--goals-file", goals_file, "delete", exercise_id) == 1
    assert "can't be deleted" in capsys.readouterr().out


class _InterruptedPlayer:
    """Player that presses Ctrl+C as soon as playback starts."""

    duration = 30.0

    def set_finished_callback(self, callback):
        pass

    def play(self):
        handler = signal.getsignal(signal.SIGINT)
        handler(signal.SIGINT, None)

    def stop(self):
        pass

    def seek(self, seconds):
        pass

    def position(self):
        return 0.0

    def release(self):
        self.released = True


def test_ctrl_c_quits_playback(qapp, notes_file, tmp_path, capsys, monkeypatch):
    clip = tmp_path / "clip.wav"
    clip.write_bytes(b"RIFF" * 10)
    players = []

    def factory(data):
        players.append(_InterruptedPlayer())
        return players[-1]

    monkeypatch.setattr(cli, "PlaybackController", lambda: PlaybackController(player_factory=factory))
    before = signal.getsignal(signal.SIGINT)

    assert _run(notes_file, "play", "--file", str(clip)) == 0

    assert players[0].released
    assert signal.getsignal(signal.SIGINT) is before
