"""Leaderboard aggregation over score history.

Entries are recomputed from the full history on every read. For each
employee with at least one score record:

- rolling average: mean WCS over the latest ``window`` periods (12)
- streak: consecutive latest periods with WCS >= ``streak_threshold`` (0.8)
- check marks: count over the full history
- ranking score: average * 100 + streak * 10 + check marks * 5
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from credit_engine.utils.logging import get_logger

from .records import LeaderboardEntry, ScoreRecord, most_recent_first

ROLLING_WINDOW = 12
STREAK_THRESHOLD = 0.8
DISPLAY_LIMIT = 10

VIEW_MODES = ("overall", "average", "streak", "checkmarks")

# (minimum streak, label), evaluated high to low
STREAK_BADGES = ((10, "Hot Streak"), (5, "On Fire"), (3, "Good Run"))

EXPORT_COLUMNS = [
    "rank",
    "employee_id",
    "name",
    "ranking_score",
    "rolling_average_score",
    "current_streak",
    "check_mark_count",
    "streak_badge",
]


def streak_badge(streak: int) -> Optional[str]:
    for min_streak, label in STREAK_BADGES:
        if streak >= min_streak:
            return label
    return None


class LeaderboardBuilder:
    """Build and order leaderboard entries.

    Args:
        window: number of latest periods in the rolling average
        streak_threshold: minimum WCS for a period to extend the streak
        score_field: record attribute to aggregate (``wcs`` or ``final_score``)
    """

    def __init__(
        self,
        window: int = ROLLING_WINDOW,
        streak_threshold: float = STREAK_THRESHOLD,
        score_field: str = "wcs",
    ):
        if score_field not in ("wcs", "final_score"):
            raise ValueError(f"score_field must be 'wcs' or 'final_score', got {score_field!r}")
        self.window = window
        self.streak_threshold = streak_threshold
        self.score_field = score_field
        self.out = get_logger("credit_engine.leaderboard")

    def _score(self, record: ScoreRecord) -> float:
        return getattr(record, self.score_field)

    def rolling_average(self, history: Sequence[ScoreRecord]) -> float:
        recent = history[: self.window]
        if not recent:
            return 0.0
        return sum(self._score(r) for r in recent) / len(recent)

    def current_streak(self, history: Sequence[ScoreRecord]) -> int:
        streak = 0
        for record in history:
            if self._score(record) < self.streak_threshold:
                break
            streak += 1
        return streak

    @staticmethod
    def check_mark_count(history: Sequence[ScoreRecord]) -> int:
        return sum(1 for r in history if r.check_mark)

    @staticmethod
    def ranking_score(rolling_average: float, streak: int, check_marks: int) -> float:
        return rolling_average * 100 + streak * 10 + check_marks * 5

    def build_entry(
        self, employee_id: str, history: Sequence[ScoreRecord], employee: Optional[Mapping[str, Any]] = None
    ) -> Optional[LeaderboardEntry]:
        """Entry for one employee, or None without any history.

        ``history`` must already be ordered most recent first.
        """
        if not history:
            return None

        average = self.rolling_average(history)
        streak = self.current_streak(history)
        check_marks = self.check_mark_count(history)
        return LeaderboardEntry(
            employee_id=employee_id,
            rolling_average_score=average,
            current_streak=streak,
            check_mark_count=check_marks,
            ranking_score=self.ranking_score(average, streak, check_marks),
            employee=employee,
        )

    def build(self, employees: Iterable[Tuple[Any, Sequence[ScoreRecord]]]) -> List[LeaderboardEntry]:
        """Rank employees by ranking score.

        Args:
            employees: ``(employee, history)`` pairs. ``employee`` is either an
                id string or a mapping with an ``employee_id`` key. Histories are
                ordered most recent first and copied before use.

        Returns:
            Entries sorted by ranking score descending, ranks 1..N. Ties keep
            their input order and still get distinct ranks.
        """
        entries: List[LeaderboardEntry] = []
        skipped = 0
        for employee, history in employees:
            if isinstance(employee, Mapping):
                employee_id, profile = str(employee["employee_id"]), employee
            else:
                employee_id, profile = str(employee), None

            entry = self.build_entry(employee_id, list(history), profile)
            if entry is None:
                skipped += 1
                continue
            entries.append(entry)

        # list.sort is stable
        entries.sort(key=lambda e: e.ranking_score, reverse=True)
        for index, entry in enumerate(entries):
            entry.rank = index + 1

        self.out.debug(f"Leaderboard built: {len(entries)} ranked, {skipped} without history")
        return entries

    def build_from_histories(self, histories: Mapping[str, Sequence[ScoreRecord]]) -> List[LeaderboardEntry]:
        """Convenience wrapper taking ``{employee_id: records}`` in any order."""
        return self.build((employee_id, most_recent_first(list(records))) for employee_id, records in histories.items())


def sort_view(entries: Sequence[LeaderboardEntry], view: str = "overall") -> List[LeaderboardEntry]:
    """Re-sort entries for display. Ranks are left untouched.

    Args:
        entries: ranked entries from ``LeaderboardBuilder.build``
        view: one of ``overall``, ``average``, ``streak``, ``checkmarks``
    """
    keys = {
        "overall": None,
        "average": lambda e: e.rolling_average_score,
        "streak": lambda e: e.current_streak,
        "checkmarks": lambda e: e.check_mark_count,
    }
    if view not in keys:
        raise ValueError(f"Unknown leaderboard view: {view}. Expected one of {', '.join(VIEW_MODES)}")

    ordered = list(entries)
    if keys[view] is not None:
        ordered.sort(key=keys[view], reverse=True)
    return ordered


def top(entries: Sequence[LeaderboardEntry], n: int = DISPLAY_LIMIT) -> List[LeaderboardEntry]:
    return list(entries[:n])


def rank_of(entries: Sequence[LeaderboardEntry], employee_id: str) -> Optional[int]:
    for entry in entries:
        if entry.employee_id == employee_id:
            return entry.rank
    return None


def histories_from_dataframe(df: pd.DataFrame) -> Dict[str, List[ScoreRecord]]:
    """Group a flat score table into most-recent-first histories per employee.

    Expects at least the ScoreRecord required columns (employee_id, period_id,
    ec, oc, cc, wcs, check_mark).
    """
    if df.empty:
        return {}

    ordered = df.sort_values(["employee_id", "period_id"], ascending=[True, False], kind="mergesort")
    histories: Dict[str, List[ScoreRecord]] = {}
    for employee_id, group in ordered.groupby("employee_id", sort=False):
        histories[str(employee_id)] = [
            ScoreRecord.from_dict({k: v for k, v in row.items() if not _is_missing(v)})
            for row in group.to_dict("records")
        ]
    return histories


def _is_missing(value: Any) -> bool:
    return not isinstance(value, (dict, list)) and pd.isna(value)


def to_dataframe(entries: Sequence[LeaderboardEntry]) -> pd.DataFrame:
    """Flatten entries for CSV export and tabular display."""
    rows = []
    for entry in entries:
        row = entry.to_dict()
        row.setdefault("name", None)
        row["streak_badge"] = streak_badge(entry.current_streak)
        rows.append(row)
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)
