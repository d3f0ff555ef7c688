"""Weighted composite scoring: EC, OC and CC into a Weekly Credit Score."""

from dataclasses import replace
from datetime import datetime
from typing import Dict, Mapping, Optional, Tuple

from credit_engine.utils.logging import get_logger

from .credits import EFFORT_TOP_BAND_HOURS, CreditCalculator, round2
from .records import (
    COLLABORATION_PERIOD_DAYS,
    DEFAULT_WEIGHTS,
    ActivityRecord,
    ActivityValidationError,
    FinalScore,
    KeyResult,
    ScoreRecord,
)


class CompositeScorer:
    """Combine credits into a WCS and derive the check mark.

    Args:
        check_mark_tolerance: allowed distance of OC from 1.0 for the check
            mark; 0.0 keeps the exact-equality rule
        period_days: working days in a collaboration period
    """

    def __init__(self, check_mark_tolerance: float = 0.0, period_days: int = COLLABORATION_PERIOD_DAYS):
        self.check_mark_tolerance = check_mark_tolerance
        self.period_days = period_days
        self.out = get_logger("credit_engine.scoring")

    @staticmethod
    def fixed_wcs(ec: float, oc: float, cc: float) -> float:
        """WCS with the standard 40/50/10 split."""
        return round2(ec * 0.4 + oc * 0.5 + cc * 0.1)

    @staticmethod
    def dynamic_wcs(ec: float, oc: float, cc: float, weights: Optional[Mapping[str, float]] = None) -> float:
        """WCS with percentage weights; defaults to 40/50/10.

        Weights are not normalised, so a configuration summing above 100 can
        push the score above 1.0.
        """
        if weights is None:
            weights = DEFAULT_WEIGHTS
        return round2(ec * (weights["EC"] / 100) + oc * (weights["OC"] / 100) + cc * (weights["CC"] / 100))

    @staticmethod
    def final_score(
        ec: float, oc: float, cc: float, weights: Optional[Mapping[str, float]] = None, multiplier: float = 1.0
    ) -> FinalScore:
        """Base composite under ``weights`` and the score after ``multiplier``."""
        resolved = dict(weights or DEFAULT_WEIGHTS)
        base_score = CompositeScorer.dynamic_wcs(ec, oc, cc, resolved)
        return FinalScore(
            base_score=base_score,
            final_score=round2(base_score * multiplier),
            multiplier=multiplier,
            weights=resolved,
        )

    def check_mark(self, hours_worked: float, oc: float) -> bool:
        """Top effort band and a perfect outcome credit."""
        return hours_worked >= EFFORT_TOP_BAND_HOURS and self._is_perfect_outcome(oc)

    def check_mark_from_credits(self, ec: float, oc: float) -> bool:
        """Check mark for stored records, where EC stands in for hours."""
        return ec >= 1.0 and self._is_perfect_outcome(oc)

    def _is_perfect_outcome(self, oc: float) -> bool:
        if self.check_mark_tolerance:
            return abs(oc - 1.0) <= self.check_mark_tolerance
        return oc == 1.0

    def credits(self, activity: ActivityRecord) -> Tuple[float, float, float]:
        """(EC, OC, CC) for an activity; no range checks."""
        signals = activity.collaboration
        return (
            CreditCalculator.effort_credit(activity.hours_worked),
            CreditCalculator.outcome_credit(activity.key_results),
            CreditCalculator.collaboration_credit(
                signals.peer_review_count,
                signals.daily_posts_in_period,
                signals.has_retro_insight,
                period_days=self.period_days,
            ),
        )

    def build_record(
        self, activity: ActivityRecord, ec: float, oc: float, cc: float, final: FinalScore
    ) -> ScoreRecord:
        record = ScoreRecord(
            employee_id=activity.employee_id,
            period_id=activity.period_id,
            ec=ec,
            oc=oc,
            cc=cc,
            wcs=final.base_score,
            check_mark=self.check_mark(activity.hours_worked, oc),
            final_score=final.final_score,
            multiplier=final.multiplier,
            weights=dict(final.weights),
        )
        self.out.debug(
            f"Scored {record.employee_id} {record.period_id}: EC={ec} OC={oc:.2f} CC={cc} WCS={record.wcs}",
            employee_id=record.employee_id,
            period_id=record.period_id,
        )
        return record

    def score_activity(
        self,
        activity: ActivityRecord,
        weights: Optional[Mapping[str, float]] = None,
        multiplier: float = 1.0,
        validate: bool = True,
    ) -> ScoreRecord:
        """Score one employee's activity for one period.

        Args:
            activity: raw inputs for the period
            weights: resolved team weights (default 40/50/10)
            multiplier: resolved performance multiplier
            validate: reject out-of-range inputs before scoring

        Returns:
            New ScoreRecord

        Raises:
            ActivityValidationError: if ``validate`` and the inputs are out of range
        """
        if validate:
            activity.validate(self.period_days)

        ec, oc, cc = self.credits(activity)
        return self.build_record(activity, ec, oc, cc, self.final_score(ec, oc, cc, weights, multiplier))

    def edit_score(
        self,
        record: ScoreRecord,
        hours_worked: float,
        key_result_score: Optional[float] = None,
        cc: Optional[float] = None,
    ) -> ScoreRecord:
        """Apply an admin edit and recompute every derived field together.

        The edit form carries hours, a single key-result score and a direct
        CC value. Omitted key-result score and CC keep the record's OC and
        CC. Weights and multiplier carry over from the original record.

        Raises:
            ActivityValidationError: for negative hours, or a key-result
                score or CC outside [0, 1]
        """
        if key_result_score is None:
            key_result_score = record.oc
        if cc is None:
            cc = record.cc

        problems = []
        if hours_worked < 0:
            problems.append(f"hours_worked must be >= 0, got {hours_worked}")
        if not 0.0 <= key_result_score <= 1.0:
            problems.append(f"key_result_score must be in [0, 1], got {key_result_score}")
        if not 0.0 <= cc <= 1.0:
            problems.append(f"cc must be in [0, 1], got {cc}")
        if problems:
            raise ActivityValidationError(
                f"Invalid edit for {record.employee_id} {record.period_id}: " + "; ".join(problems)
            )

        ec = CreditCalculator.effort_credit(hours_worked)
        oc = CreditCalculator.outcome_credit([KeyResult(score=key_result_score, weight=1.0)])
        final = self.final_score(ec, oc, cc, record.weights, record.multiplier)

        self.out.info(
            f"Edited score for {record.employee_id} {record.period_id}: WCS {record.wcs} -> {final.base_score}",
            employee_id=record.employee_id,
            period_id=record.period_id,
        )
        return replace(
            record,
            ec=ec,
            oc=oc,
            cc=cc,
            wcs=final.base_score,
            check_mark=self.check_mark(hours_worked, oc),
            final_score=final.final_score,
            created_at=datetime.now().isoformat(timespec="seconds"),
        )

    def recompute(self, record: ScoreRecord, **credits: float) -> ScoreRecord:
        """Re-derive WCS and check mark after replacing any of ec/oc/cc.

        Example:
            scorer.recompute(record, cc=0.4)
        """
        unknown = set(credits) - {"ec", "oc", "cc"}
        if unknown:
            raise TypeError(f"recompute() got unexpected credits: {', '.join(sorted(unknown))}")

        values: Dict[str, float] = {"ec": record.ec, "oc": record.oc, "cc": record.cc, **credits}
        final = self.final_score(values["ec"], values["oc"], values["cc"], record.weights, record.multiplier)
        return replace(
            record,
            ec=values["ec"],
            oc=values["oc"],
            cc=values["cc"],
            wcs=final.base_score,
            check_mark=self.check_mark_from_credits(values["ec"], values["oc"]),
            final_score=final.final_score,
        )
