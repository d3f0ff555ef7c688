"""Scoring engine facade wiring credits, personalization and the leaderboard.

``ScoringEngine.from_config`` builds everything from a ``Config``; tests and
embedding callers can assemble the pieces directly.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from credit_engine.utils.logging import get_logger

from .composite import CompositeScorer
from .leaderboard import LeaderboardBuilder
from .personalization import ConfigRepository, CreditPersonalizer
from .records import ActivityRecord, CreditValidationError, LeaderboardEntry, ScoreRecord


class ScoringEngine:
    def __init__(
        self,
        repository: Optional[ConfigRepository] = None,
        default_weights: Optional[Mapping[str, float]] = None,
        scorer: Optional[CompositeScorer] = None,
        leaderboard: Optional[LeaderboardBuilder] = None,
        employee_lookup: Optional[Callable[[str], Optional[Mapping[str, Any]]]] = None,
    ):
        self.scorer = scorer or CompositeScorer()
        self.personalizer = CreditPersonalizer(repository, default_weights, self.scorer)
        self.leaderboard_builder = leaderboard or LeaderboardBuilder()
        self.employee_lookup = employee_lookup or (lambda employee_id: None)
        self.out = get_logger("credit_engine.scoring")

    @classmethod
    def from_config(cls, config) -> "ScoringEngine":
        board = config.leaderboard_config
        return cls(
            repository=config,
            default_weights=config.default_weights,
            scorer=CompositeScorer(
                check_mark_tolerance=config.check_mark_tolerance,
                period_days=config.collaboration_period_days,
            ),
            leaderboard=LeaderboardBuilder(
                window=board["window"],
                streak_threshold=board["streak_threshold"],
                score_field=board["score_field"],
            ),
            employee_lookup=config.get_employee,
        )

    def _team_for(self, activity: ActivityRecord) -> Optional[str]:
        if activity.team_id:
            return activity.team_id
        employee = self.employee_lookup(activity.employee_id)
        return employee.get("team_id") if employee else None

    def score(self, activity: ActivityRecord) -> ScoreRecord:
        """Score an activity record with the employee's team weights and multiplier.

        Raises:
            ActivityValidationError: if the inputs are out of range
        """
        activity.validate(self.scorer.period_days)
        ec, oc, cc = self.scorer.credits(activity)
        final = self.personalizer.compute_final_score(ec, oc, cc, activity.employee_id, self._team_for(activity))
        return self.scorer.build_record(activity, ec, oc, cc, final)

    def score_many(
        self, activities: Sequence[ActivityRecord], workers: int = 1
    ) -> Tuple[List[ScoreRecord], Dict[str, str]]:
        """Score a batch; employees are independent so order is not preserved.

        Returns:
            Tuple of (records, errors) where errors maps
            ``"employee_id period_id"`` to the validation message
        """
        records: List[ScoreRecord] = []
        errors: Dict[str, str] = {}

        def label(activity: ActivityRecord) -> str:
            return f"{activity.employee_id} {activity.period_id}"

        if workers > 1 and len(activities) > 1:
            with ThreadPoolExecutor(max_workers=min(workers, len(activities))) as executor:
                futures = {executor.submit(self.score, activity): activity for activity in activities}
                for future in as_completed(futures):
                    activity = futures[future]
                    try:
                        records.append(future.result())
                    except CreditValidationError as e:
                        errors[label(activity)] = str(e)
        else:
            for activity in activities:
                try:
                    records.append(self.score(activity))
                except CreditValidationError as e:
                    errors[label(activity)] = str(e)

        for key, message in errors.items():
            self.out.warning(f"Rejected activity {key}: {message}")
        return records, errors

    def edit(
        self,
        record: ScoreRecord,
        hours_worked: float,
        key_result_score: Optional[float] = None,
        cc: Optional[float] = None,
    ) -> ScoreRecord:
        return self.scorer.edit_score(record, hours_worked, key_result_score, cc)

    def build_leaderboard(self, histories: Mapping[str, Sequence[ScoreRecord]]) -> List[LeaderboardEntry]:
        """Rank employees from ``{employee_id: most-recent-first history}``."""
        employees = []
        for employee_id, history in histories.items():
            profile = self.employee_lookup(employee_id)
            employee = {**profile, "employee_id": employee_id} if profile else employee_id
            employees.append((employee, history))
        return self.leaderboard_builder.build(employees)
