"""Data shapes exchanged between the scoring engine and its collaborators.

Activity records come in from time-tracking and goal-tracking, score records
go out to persistence, and leaderboard entries go out to display. Score records
are immutable; edits produce a new record with every derived field recomputed.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

DEFAULT_WEIGHTS: Dict[str, float] = {"EC": 40, "OC": 50, "CC": 10}
WEIGHT_KEYS = ("EC", "OC", "CC")
COLLABORATION_PERIOD_DAYS = 5


class CreditValidationError(ValueError):
    """Base class for rejected scoring inputs."""


class ActivityValidationError(CreditValidationError):
    """Raised when an activity record carries out-of-range values."""


class ScoreRecordError(CreditValidationError):
    """Raised when a persisted score record cannot be reconstructed."""


@dataclass(frozen=True)
class KeyResult:
    score: float
    weight: float = 1.0


@dataclass(frozen=True)
class CollaborationSignals:
    peer_review_count: int = 0
    daily_posts_in_period: int = 0
    has_retro_insight: bool = False


@dataclass(frozen=True)
class ActivityRecord:
    """Raw inputs for one employee in one period."""

    employee_id: str
    period_id: str
    hours_worked: float = 0.0
    key_results: Sequence[KeyResult] = ()
    collaboration: CollaborationSignals = field(default_factory=CollaborationSignals)
    team_id: Optional[str] = None

    def validate(self, period_days: int = COLLABORATION_PERIOD_DAYS) -> "ActivityRecord":
        """Reject out-of-range inputs instead of clamping them.

        Raises:
            ActivityValidationError: listing every offending field
        """
        problems = []
        if self.hours_worked < 0:
            problems.append(f"hours_worked must be >= 0, got {self.hours_worked}")
        for i, kr in enumerate(self.key_results):
            if not 0.0 <= kr.score <= 1.0:
                problems.append(f"key_results[{i}].score must be in [0, 1], got {kr.score}")
            if kr.weight <= 0:
                problems.append(f"key_results[{i}].weight must be > 0, got {kr.weight}")
        signals = self.collaboration
        if signals.peer_review_count < 0:
            problems.append(f"peer_review_count must be >= 0, got {signals.peer_review_count}")
        if not 0 <= signals.daily_posts_in_period <= period_days:
            problems.append(
                f"daily_posts_in_period must be in [0, {period_days}], got {signals.daily_posts_in_period}"
            )

        if problems:
            raise ActivityValidationError(f"Invalid activity for {self.employee_id} {self.period_id}: " + "; ".join(problems))
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ActivityRecord":
        """Build from the plain dict shape used by the job input files and the API."""
        signals = data.get("collaboration") or {}
        return cls(
            employee_id=str(data["employee_id"]),
            period_id=str(data["period_id"]),
            hours_worked=float(data.get("hours_worked", 0) or 0),
            key_results=tuple(
                KeyResult(score=float(kr["score"]), weight=float(kr.get("weight", 1)))
                for kr in data.get("key_results") or []
            ),
            collaboration=CollaborationSignals(
                peer_review_count=int(signals.get("peer_review_count", 0)),
                daily_posts_in_period=int(signals.get("daily_posts_in_period", 0)),
                has_retro_insight=bool(signals.get("has_retro_insight", False)),
            ),
            team_id=data.get("team_id"),
        )


@dataclass(frozen=True)
class FinalScore:
    base_score: float
    final_score: float
    multiplier: float
    weights: Dict[str, float]


@dataclass(frozen=True)
class ScoreRecord:
    """Persisted score for one employee in one period.

    ``wcs`` is the weighted composite of ``ec``/``oc``/``cc`` under ``weights``;
    ``final_score`` is ``wcs`` after the employee's performance multiplier.
    """

    employee_id: str
    period_id: str
    ec: float
    oc: float
    cc: float
    wcs: float
    check_mark: bool
    final_score: Optional[float] = None
    multiplier: float = 1.0
    weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    created_at: Optional[str] = None

    def __post_init__(self):
        if self.final_score is None:
            object.__setattr__(self, "final_score", self.wcs)
        if self.created_at is None:
            object.__setattr__(self, "created_at", datetime.now().isoformat(timespec="seconds"))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScoreRecord":
        required = ("employee_id", "period_id", "ec", "oc", "cc", "wcs", "check_mark")
        missing = [key for key in required if key not in data]
        if missing:
            raise ScoreRecordError(f"Score record missing fields: {', '.join(missing)}")

        return cls(
            employee_id=str(data["employee_id"]),
            period_id=str(data["period_id"]),
            ec=float(data["ec"]),
            oc=float(data["oc"]),
            cc=float(data["cc"]),
            wcs=float(data["wcs"]),
            check_mark=bool(data["check_mark"]),
            final_score=None if data.get("final_score") is None else float(data["final_score"]),
            multiplier=float(data.get("multiplier", 1.0)),
            weights=dict(data.get("weights") or DEFAULT_WEIGHTS),
            created_at=data.get("created_at"),
        )


@dataclass
class LeaderboardEntry:
    employee_id: str
    rolling_average_score: float
    current_streak: int
    check_mark_count: int
    ranking_score: float
    rank: int = 0
    employee: Optional[Mapping[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("employee")
        if self.employee is not None:
            data["name"] = self.employee.get("name")
        return data


@dataclass(frozen=True)
class QuarterScore:
    employee_id: str
    year: int
    quarter: int
    qs: float
    cumulative_check_marks: int
    periods_scored: int


def most_recent_first(records: List[ScoreRecord]) -> List[ScoreRecord]:
    """Sort records newest period first; ISO year-week ids sort lexically."""
    return sorted(records, key=lambda r: r.period_id, reverse=True)
