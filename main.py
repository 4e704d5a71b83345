#main.py
import argparse
import signal
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication, QTimer

from studybuddy.ai_client import AIClient
from studybuddy.goals import GoalManager
from studybuddy.models import ExplanationLevel, Goal
from studybuddy.notes_store import ExportFormat, NotesStore
from studybuddy.playback import PlaybackController
from studybuddy.worker import AIWorker


FORMATS = {"md": ExportFormat.MARKDOWN, "txt": ExportFormat.PLAIN_TEXT}
LEVELS = {level.name.lower(): level for level in ExplanationLevel}


def fmt_time(seconds: float) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def _find_note(store: NotesStore, note_id: str):
    # Accept a unique id prefix, like git does for hashes.
    matches = [n for n in store.notes if n.id.startswith(note_id)]
    if len(matches) != 1:
        print(f"[Notes] No unique note matches '{note_id}'")
        return None
    return matches[0]


def cmd_list(store: NotesStore, args) -> int:
    for note in store.filtered_notes(args.search):
        extras = []
        if note.voice_notes:
            extras.append(f"{len(note.voice_notes)} voice")
        if note.attachments:
            extras.append(f"{len(note.attachments)} files")
        suffix = f"  ({', '.join(extras)})" if extras else ""
        print(f"{note.id[:8]}  {note.modified_at:%Y-%m-%d %H:%M}  {note.title}{suffix}")
    return 0


def cmd_new(store: NotesStore, args) -> int:
    note = store.create_note(args.title, args.content or "")
    print(f"[Notes] Created {note.id[:8]}: {note.title}")
    return 0


def cmd_add_voice(store: NotesStore, args) -> int:
    note = _find_note(store, args.note)
    if note is None:
        return 1
    data = Path(args.file).read_bytes()
    if not store.add_voice_note(note, data, args.duration):
        print(f"[Notes] {store.error_message}")
        return 1
    store.flush()
    print(f"[Notes] Added voice note to {note.title}")
    return 0


def cmd_export(store: NotesStore, args) -> int:
    note = _find_note(store, args.note)
    if note is None:
        return 1
    fmt = FORMATS[args.format]
    data = store.export_note(note, fmt)
    if args.out:
        Path(args.out).write_bytes(data)
        print(f"[Notes] Exported to {args.out}")
    else:
        sys.stdout.write(data.decode("utf-8"))
    return 0


def cmd_play(store: NotesStore, args) -> int:
    if args.note:
        note = _find_note(store, args.note)
        if note is None:
            return 1
        if not 0 <= args.index < len(note.voice_notes):
            print(f"[Audio] Note has no voice note #{args.index}")
            return 1
        audio = note.voice_notes[args.index].audio_data
    else:
        audio = Path(args.file).read_bytes()

    app = QCoreApplication.instance()
    player = PlaybackController()
    exit_code = {"value": 0}
    last_printed = {"second": -1}

    def on_time(t: float):
        if int(t) != last_printed["second"]:
            last_printed["second"] = int(t)
            print(f"\r[Audio] {fmt_time(t)} / {fmt_time(player.duration)}", end="", flush=True)

    def on_failed(message: str):
        print(f"[Audio] Playback failed: {message}")
        exit_code["value"] = 1
        app.quit()

    def on_finished():
        print()
        player.stop()
        app.quit()

    def start():
        if not player.play(audio):
            return
        print(f"[Audio] Playing {fmt_time(player.duration)} clip (Ctrl+C to stop)")
        if args.seek:
            player.seek(args.seek)

    player.current_time_changed.connect(on_time)
    player.playback_failed.connect(on_failed)
    player.playback_finished.connect(on_finished)
    QTimer.singleShot(0, start)

    # Qt's loop swallows KeyboardInterrupt; quit the loop on Ctrl+C instead.
    previous = signal.signal(signal.SIGINT, lambda *_: app.quit())
    try:
        app.exec()
    finally:
        signal.signal(signal.SIGINT, previous)
        player.stop()
    return exit_code["value"]


def _ai_client_or_none():
    client = AIClient()
    if not client.is_available():
        print("[AI] Set SB_AI_BASE_URL to an OpenAI-compatible endpoint.")
        return None
    return client


def _run_ai_job(client, job: str, note, **kwargs):
    """Run one AIWorker job inside the event loop; returns its result or None."""
    app = QCoreApplication.instance()
    worker = AIWorker(client, job, note, **kwargs)
    outcome = {}

    worker.status.connect(lambda s: print(f"[AI] {s}"))
    worker.result_ready.connect(lambda r: outcome.update(result=r))
    worker.failed.connect(lambda m: outcome.update(error=m))
    worker.finished.connect(app.quit)
    QTimer.singleShot(0, worker.start)

    app.exec()
    worker.wait()

    if "error" in outcome:
        print(f"[AI] {outcome['error']}")
        return None
    return outcome.get("result")


def _note_and_client(store: NotesStore, args):
    note = _find_note(store, args.note)
    if note is None:
        return None, None
    return note, _ai_client_or_none()


def cmd_summarize(store: NotesStore, args) -> int:
    note, client = _note_and_client(store, args)
    if note is None or client is None:
        return 1
    result = _run_ai_job(client, "summarize", note)
    if result is None:
        return 1
    summary, key_points = result
    store.apply_summary(note, summary, key_points)
    store.flush()
    print(summary)
    for point in key_points:
        print(f"- {point}")
    return 0


def cmd_quiz(store: NotesStore, args) -> int:
    note, client = _note_and_client(store, args)
    if note is None or client is None:
        return 1
    quiz = _run_ai_job(client, "quiz", note, question_count=args.count)
    if quiz is None:
        return 1
    print(quiz.title)
    for i, q in enumerate(quiz.questions, 1):
        print(f"{i}. [{q.type.value}] {q.question}")
        for opt in q.options:
            print(f"   - {opt}")
        print(f"   Answer: {q.correct_answer}")
    return 0


def cmd_proofread(store: NotesStore, args) -> int:
    note, client = _note_and_client(store, args)
    if note is None or client is None:
        return 1
    result = _run_ai_job(client, "proofread", note)
    if result is None:
        return 1
    print(result.summary)
    for suggestion in result.suggestions:
        print(f"- {suggestion}")
    for mistake in result.mistakes:
        print(f"! [{mistake.type.value}] {mistake.description}")
    return 0


def cmd_explain(store: NotesStore, args) -> int:
    note, client = _note_and_client(store, args)
    if note is None or client is None:
        return 1
    text = _run_ai_job(client, "explain", note, level=LEVELS[args.level])
    if text is None:
        return 1
    print(text)
    return 0


# -- goals -------------------------------------------------------------------

def _find_goal(goals: GoalManager, goal_id: str):
    matches = [g for g in goals.goals if g.id.startswith(goal_id)]
    if len(matches) != 1:
        print(f"[Goals] No unique goal matches '{goal_id}'")
        return None
    return matches[0]


def cmd_goals(store: NotesStore, args) -> int:
    goals = GoalManager(Path(args.goals_file) if args.goals_file else None)
    action = args.action or "list"

    if action == "add":
        goal = goals.add_goal(Goal(args.title, args.description or "", target_count=args.target))
        print(f"[Goals] Added {goal.id[:8]}: {goal.title}")
        return 0

    if action in ("done", "delete"):
        goal = _find_goal(goals, args.goal)
        if goal is None:
            return 1
        if action == "delete":
            if not goals.delete_goal(goal):
                print(f"[Goals] Default goal '{goal.title}' can't be deleted")
                return 1
            print(f"[Goals] Deleted {goal.title}")
            return 0
        goals.mark_goal_completed(goal)
        print(f"[Goals] {goal.title}: {goal.current_count}/{goal.target_count}")
        return 0

    if action == "reset":
        goals.reset_daily_progress()
        print("[Goals] Daily progress reset")
        return 0

    for goal in goals.goals:
        check = "x" if goal.current_count >= goal.target_count else " "
        print(f"[{check}] {goal.id[:8]}  {goal.title}  {goal.current_count}/{goal.target_count}")
    print(
        f"Today {goals.average_completion_rate:.0%}  "
        f"streak {goals.current_streak}d (best {goals.best_streak}d)  "
        f"total {goals.total_completed_goals}"
    )
    for achievement in goals.achievements:
        if achievement.is_unlocked:
            print(f"* {achievement.title}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="studybuddy", description="StudyBuddy notes and voice notes")
    parser.add_argument("--notes-file", help="notes JSON file (default: data dir)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="list notes, newest first")
    p.add_argument("--search", default="")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("new", help="create a note")
    p.add_argument("title")
    p.add_argument("--content")
    p.set_defaults(func=cmd_new)

    p = sub.add_parser("add-voice", help="attach an audio file as a voice note")
    p.add_argument("note")
    p.add_argument("file")
    p.add_argument("--duration", type=float, default=0.0)
    p.set_defaults(func=cmd_add_voice)

    p = sub.add_parser("export", help="export a note")
    p.add_argument("note")
    p.add_argument("--format", choices=sorted(FORMATS), default="md")
    p.add_argument("--out")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("play", help="play an audio file or a note's voice note")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--file")
    src.add_argument("--note")
    p.add_argument("--index", type=int, default=0)
    p.add_argument("--seek", type=float, default=0.0)
    p.set_defaults(func=cmd_play)

    p = sub.add_parser("summarize", help="AI summary + key points for a note")
    p.add_argument("note")
    p.set_defaults(func=cmd_summarize)

    p = sub.add_parser("quiz", help="generate a quiz from a note")
    p.add_argument("note")
    p.add_argument("--count", type=int, default=5)
    p.set_defaults(func=cmd_quiz)

    p = sub.add_parser("proofread", help="grammar, spelling and style feedback for a note")
    p.add_argument("note")
    p.set_defaults(func=cmd_proofread)

    p = sub.add_parser("explain", help="explain a note at a chosen level")
    p.add_argument("note")
    p.add_argument("--level", choices=list(LEVELS), default="intermediate")
    p.set_defaults(func=cmd_explain)

    p = sub.add_parser("goals", help="daily goals, streaks and achievements")
    p.add_argument("--goals-file", help="goals JSON file (default: data dir)")
    actions = p.add_subparsers(dest="action")
    actions.add_parser("list", help="show goals and stats (default)")
    a = actions.add_parser("add", help="add a goal")
    a.add_argument("title")
    a.add_argument("--description")
    a.add_argument("--target", type=int, default=1)
    a = actions.add_parser("done", help="count one completion of a goal")
    a.add_argument("goal")
    a = actions.add_parser("delete", help="delete a non-default goal")
    a.add_argument("goal")
    actions.add_parser("reset", help="zero today's counts")
    p.set_defaults(func=cmd_goals, action="list")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    # QTimers in the store and the player need an application object.
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])  # noqa: F841
    store = NotesStore(Path(args.notes_file) if args.notes_file else None, autosave=False)
    try:
        return args.func(store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
