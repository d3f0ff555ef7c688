"""Credit calculators for the weekly credit score.

Three independent inputs feed the composite score:

- Effort Credit (EC): banded from hours worked in the period
- Outcome Credit (OC): weighted mean of key-result scores
- Collaboration Credit (CC): points for peer reviews, posting cadence and
  retrospective input, clamped to [0, 1]

The calculators apply the formulas only. Range checks on the inputs happen at
the ingestion boundary (``ActivityRecord.validate``).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from .records import COLLABORATION_PERIOD_DAYS, KeyResult

# (minimum hours, credit), evaluated high to low
EFFORT_BANDS = ((20.0, 1.0), (15.0, 0.8), (10.0, 0.5))
EFFORT_TOP_BAND_HOURS = EFFORT_BANDS[0][0]

PEER_REVIEW_CAP = 3
PEER_REVIEW_POINTS = 0.33
MISSED_POST_PENALTY = 0.2
MISSING_RETRO_PENALTY = 0.2


def round2(value: float) -> float:
    """Round to 2 places, ties away from zero on the exact binary value."""
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


class CreditCalculator:
    """Pure functions mapping raw activity signals to credits."""

    @staticmethod
    def effort_credit(hours_worked: float) -> float:
        """Map hours worked to an effort band.

        Bands are closed below: 20h and up -> 1.0, 15h -> 0.8, 10h -> 0.5,
        anything less -> 0.0.
        """
        for min_hours, credit in EFFORT_BANDS:
            if hours_worked >= min_hours:
                return credit
        return 0.0

    @staticmethod
    def outcome_credit(key_results: Sequence[KeyResult]) -> float:
        """Weighted mean of key-result scores; 0 when there are none."""
        if not key_results:
            return 0.0

        total_weight = sum(kr.weight for kr in key_results)
        weighted = sum(kr.score * kr.weight for kr in key_results)
        return weighted / total_weight

    @staticmethod
    def collaboration_credit(
        peer_review_count: int,
        daily_posts_in_period: int,
        has_retro_insight: bool,
        period_days: int = COLLABORATION_PERIOD_DAYS,
    ) -> float:
        """Additive collaboration points, rounded to 2 places then clamped to [0, 1].

        Each day of the period without a daily post costs 0.2; a full cadence
        costs nothing. Peer reviews count up to three.
        """
        cc = 0.0
        cc += min(peer_review_count, PEER_REVIEW_CAP) * PEER_REVIEW_POINTS
        cc += (period_days - daily_posts_in_period) * -MISSED_POST_PENALTY
        if not has_retro_insight:
            cc -= MISSING_RETRO_PENALTY

        return clamp(round2(cc))
