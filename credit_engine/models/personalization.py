"""Per-team weights and per-employee multipliers.

Configuration is read through an injected ``ConfigRepository`` rather than
looked up from shared state. Resolution never raises: missing or malformed
entries fall back to the defaults and the anomaly is logged.
"""

from abc import ABC, abstractmethod
from numbers import Real
from typing import Any, Dict, Mapping, Optional

from credit_engine.utils.logging import get_logger

from .composite import CompositeScorer
from .credits import round2
from .records import DEFAULT_WEIGHTS, WEIGHT_KEYS, FinalScore

DEFAULT_MULTIPLIER = 1.0


class ConfigRepository(ABC):
    """Read access to admin-owned credit configuration.

    Implementations return the raw stored value, or None when nothing is
    stored. Validation is the personalizer's job.
    """

    @abstractmethod
    def get_team_weights(self, team_id: str) -> Optional[Any]:
        ...

    @abstractmethod
    def get_user_multiplier(self, employee_id: str) -> Optional[Any]:
        ...


class InMemoryConfigRepository(ConfigRepository):
    def __init__(
        self,
        team_weights: Optional[Dict[str, Any]] = None,
        user_multipliers: Optional[Dict[str, Any]] = None,
    ):
        self.team_weights = dict(team_weights or {})
        self.user_multipliers = dict(user_multipliers or {})

    def get_team_weights(self, team_id: str) -> Optional[Any]:
        return self.team_weights.get(team_id)

    def get_user_multiplier(self, employee_id: str) -> Optional[Any]:
        return self.user_multipliers.get(employee_id)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


class CreditPersonalizer:
    """Resolve team weights and multipliers, and compute final scores."""

    def __init__(
        self,
        repository: Optional[ConfigRepository] = None,
        default_weights: Optional[Mapping[str, float]] = None,
        scorer: Optional[CompositeScorer] = None,
    ):
        self.repository = repository or InMemoryConfigRepository()
        self.default_weights = dict(default_weights or DEFAULT_WEIGHTS)
        self.scorer = scorer or CompositeScorer()
        self.out = get_logger("credit_engine.personalization")

    def resolve_team_weights(self, team_id: Optional[str] = None) -> Dict[str, float]:
        """Configured weights for the team, else the defaults."""
        if not team_id:
            return dict(self.default_weights)

        try:
            raw = self.repository.get_team_weights(team_id)
        except Exception as e:
            self.out.warning(f"Could not load credit weights for team {team_id}: {e}", team_id=team_id)
            return dict(self.default_weights)

        if raw is None:
            return dict(self.default_weights)

        if not isinstance(raw, Mapping) or not all(_is_number(raw.get(key)) and raw[key] >= 0 for key in WEIGHT_KEYS):
            self.out.warning(f"Malformed credit weights for team {team_id}: {raw!r}; using defaults", team_id=team_id)
            return dict(self.default_weights)

        weights = {key: raw[key] for key in WEIGHT_KEYS}
        total = sum(weights.values())
        if total != 100:
            self.out.warning(f"Credit weights for team {team_id} sum to {total}, not 100", team_id=team_id)
        return weights

    def resolve_user_multiplier(self, employee_id: str) -> float:
        """Stored performance multiplier, else 1.0."""
        try:
            raw = self.repository.get_user_multiplier(employee_id)
        except Exception as e:
            self.out.warning(f"Could not load multiplier for {employee_id}: {e}", employee_id=employee_id)
            return DEFAULT_MULTIPLIER

        if raw is None:
            return DEFAULT_MULTIPLIER

        if not _is_number(raw) or raw <= 0:
            self.out.warning(f"Invalid multiplier for {employee_id}: {raw!r}; using 1.0", employee_id=employee_id)
            return DEFAULT_MULTIPLIER

        return float(raw)

    @staticmethod
    def apply_multiplier(score: float, multiplier: float = DEFAULT_MULTIPLIER) -> float:
        return round2(score * multiplier)

    def compute_final_score(
        self, ec: float, oc: float, cc: float, employee_id: str, team_id: Optional[str] = None
    ) -> FinalScore:
        """Entry point for scoring jobs and the edit-score workflow.

        Resolves the team's weights and the employee's multiplier, then
        returns both the base composite and the multiplied score.
        """
        weights = self.resolve_team_weights(team_id)
        multiplier = self.resolve_user_multiplier(employee_id)
        return self.scorer.final_score(ec, oc, cc, weights, multiplier)
