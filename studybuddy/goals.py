# studybuddy/goals.py
"""
Daily goals, streaks and achievements.

Goals are counted per calendar day of the local clock. A goal is "completed
on" a day when one of its completed_dates falls on that day; marking a goal
several times in a day raises current_count (capped at target_count) but
records the day only once.
"""
import calendar
import json
import os
import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from .config import GOALS_FILE
from .debug import debug_log
from .models import Achievement, Goal


def default_goals() -> List[Goal]:
    return [
        Goal("Exercise", "30 minutes of physical activity", "dumbbell.fill", "green", 1, is_default=True),
        Goal("Read", "Read for 20 minutes", "book.fill", "blue", 1, is_default=True),
        Goal("Meditate", "10 minutes of mindfulness", "leaf.fill", "purple", 1, is_default=True),
        Goal("Water", "Drink 8 glasses of water", "drop.fill", "cyan", 8, is_default=True),
    ]


def default_achievements() -> List[Achievement]:
    return [
        Achievement("First Goal", "Create your first goal", "target"),
        Achievement("Streak Starter", "Complete goals for 3 days in a row", "flame.fill"),
        Achievement("Week Warrior", "Complete goals for 7 days in a row", "calendar"),
        Achievement("Goal Getter", "Complete 10 goals", "trophy.fill"),
        Achievement("Consistency King", "Complete goals for 30 days in a row", "crown.fill"),
    ]


# title -> (metric, threshold)
_ACHIEVEMENT_RULES = {
    "First Goal": ("goals", 1),
    "Streak Starter": ("streak", 3),
    "Week Warrior": ("streak", 7),
    "Goal Getter": ("completions", 10),
    "Consistency King": ("streak", 30),
}


class GoalManager(QObject):
    goals_changed = Signal()
    goal_completed = Signal(object)        # Goal that just reached its target
    achievement_unlocked = Signal(object)  # Achievement
    error = Signal(str)

    def __init__(
        self,
        path: Optional[Path] = None,
        clock: Optional[Callable[[], datetime]] = None,
        parent=None,
    ):
        super().__init__(parent)
        self.path = Path(path) if path else GOALS_FILE
        self._clock = clock or datetime.now
        self.goals: List[Goal] = []
        self.achievements: List[Achievement] = []
        self._best_streak = 0
        self.error_message: Optional[str] = None

        self._load()
        self._ensure_default_achievements()

    def _today(self) -> date:
        return self._clock().date()

    # -- goal management ---------------------------------------------------

    def get(self, goal_id: str) -> Optional[Goal]:
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        return None

    def add_goal(self, goal: Goal) -> Goal:
        self.goals.append(goal)
        debug_log(f"GoalManager: added goal {goal.title} ({len(self.goals)} total)")
        self._update_achievements()
        self.save()
        self.goals_changed.emit()
        return goal

    def update_goal(self, goal: Goal) -> bool:
        for i, existing in enumerate(self.goals):
            if existing.id == goal.id:
                self.goals[i] = goal
                self.save()
                self.goals_changed.emit()
                return True
        return False

    def delete_goal(self, goal: Goal) -> bool:
        if goal.is_default:
            debug_log(f"GoalManager: refusing to delete default goal {goal.title}")
            return False
        before = len(self.goals)
        self.goals = [g for g in self.goals if g.id != goal.id]
        if len(self.goals) == before:
            return False
        self.save()
        self.goals_changed.emit()
        return True

    def mark_goal_completed(self, goal: Goal) -> bool:
        current = self.get(goal.id)
        if current is None:
            return False

        current.current_count = min(current.current_count + 1, current.target_count)
        now = self._clock()
        if not current.completed_on(now.date()):
            current.completed_dates.append(now)
        debug_log(f"GoalManager: {current.title} at {current.current_count}/{current.target_count}")

        self._update_achievements()
        self.save()
        self.goals_changed.emit()
        if current.current_count >= current.target_count:
            self.goal_completed.emit(current)
        return True

    def reset_daily_progress(self) -> None:
        for goal in self.goals:
            goal.current_count = 0
        self.save()
        self.goals_changed.emit()

    # -- statistics --------------------------------------------------------

    @property
    def average_completion_rate(self) -> float:
        """Share of goals whose count has reached the target today."""
        if not self.goals:
            return 0.0
        return self.today_completed_goals / len(self.goals)

    @property
    def today_completed_goals(self) -> int:
        return sum(1 for g in self.goals if g.current_count >= g.target_count)

    @property
    def total_completed_goals(self) -> int:
        return sum(len(g.completed_dates) for g in self.goals)

    @property
    def current_streak(self) -> int:
        """Consecutive days, ending today, on which every goal was completed."""
        if not self.goals:
            return 0
        streak = 0
        day = self._today()
        while all(g.completed_on(day) for g in self.goals):
            streak += 1
            day -= timedelta(days=1)
        return streak

    @property
    def best_streak(self) -> int:
        return max(self.current_streak, self._best_streak)

    @property
    def average_daily_goals(self) -> float:
        now = self._clock()
        days = max([(now - g.created_at).days for g in self.goals] or [1])
        return self.total_completed_goals / max(days, 1)

    def completion_rate(self, day: date) -> float:
        if not self.goals:
            return 0.0
        done = sum(1 for g in self.goals if g.completed_on(day))
        return done / len(self.goals)

    def monthly_completion_rate(self, day: date) -> float:
        """Completions in day's month over days_in_month * target for every goal."""
        if not self.goals:
            return 0.0
        days_in_month = calendar.monthrange(day.year, day.month)[1]
        completions = 0
        possible = 0
        for goal in self.goals:
            completions += sum(
                1 for d in goal.completed_dates if (d.year, d.month) == (day.year, day.month)
            )
            possible += days_in_month * goal.target_count
        return completions / possible if possible else 0.0

    def completion_history(self, goal: Goal, days: int = 30) -> List[Tuple[date, float]]:
        """(day, 1.0 or 0.0) for the last `days` days, oldest first."""
        today = self._today()
        history = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            history.append((day, 1.0 if goal.completed_on(day) else 0.0))
        return history

    # -- achievements ------------------------------------------------------

    def _ensure_default_achievements(self) -> None:
        titles = {a.title for a in self.achievements}
        missing = [a for a in default_achievements() if a.title not in titles]
        if missing:
            self.achievements.extend(missing)
            self.save()

    def _update_achievements(self) -> None:
        streak = self.current_streak
        metrics = {
            "goals": len(self.goals),
            "streak": streak,
            "completions": self.total_completed_goals,
        }
        for achievement in self.achievements:
            rule = _ACHIEVEMENT_RULES.get(achievement.title)
            if rule is None:
                continue
            metric, threshold = rule
            value = metrics[metric]
            achievement.progress = min(1.0, value / threshold)
            if not achievement.is_unlocked and value >= threshold:
                achievement.is_unlocked = True
                achievement.unlocked_at = self._clock()
                debug_log(f"GoalManager: achievement unlocked: {achievement.title}")
                self.achievement_unlocked.emit(achievement)

        if streak > self._best_streak:
            self._best_streak = streak

    # -- persistence -------------------------------------------------------

    def save(self) -> bool:
        payload = json.dumps(
            {
                "goals": [g.to_dict() for g in self.goals],
                "achievements": [a.to_dict() for a in self.achievements],
                "best_streak": self._best_streak,
            },
            ensure_ascii=False,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".goals-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, self.path)
        except OSError as e:
            self.error_message = f"Failed to save goals: {e}"
            debug_log(self.error_message)
            self.error.emit(self.error_message)
            return False
        return True

    def _load(self) -> None:
        if not self.path.exists():
            debug_log("GoalManager: no saved goals, creating defaults")
            self.goals = default_goals()
            self.save()
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self.goals = [Goal.from_dict(d) for d in raw.get("goals", [])]
            self.achievements = [Achievement.from_dict(d) for d in raw.get("achievements", [])]
            self._best_streak = int(raw.get("best_streak", 0))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self.error_message = f"Failed to load goals: {e}"
            debug_log(self.error_message)
            self.goals = []
            self.achievements = []
            return

        debug_log(f"GoalManager: loaded {len(self.goals)} goals from {self.path}")
