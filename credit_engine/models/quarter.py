"""Quarter scores: average WCS and cumulative check marks per calendar quarter."""

from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from credit_engine.utils.periods import quarter_of_period

from .credits import round2
from .records import QuarterScore, ScoreRecord


def quarter_score(employee_id: str, year: int, quarter: int, records: Iterable[ScoreRecord]) -> QuarterScore:
    """QS for one quarter from the employee's records; other quarters are ignored."""
    in_quarter = [r for r in records if quarter_of_period(r.period_id) == (year, quarter)]
    qs = round2(sum(r.wcs for r in in_quarter) / len(in_quarter)) if in_quarter else 0.0
    return QuarterScore(
        employee_id=employee_id,
        year=year,
        quarter=quarter,
        qs=qs,
        cumulative_check_marks=sum(1 for r in in_quarter if r.check_mark),
        periods_scored=len(in_quarter),
    )


def quarter_scores(employee_id: str, records: Iterable[ScoreRecord]) -> List[QuarterScore]:
    """Every quarter the employee has records in, most recent first."""
    by_quarter: Dict[Tuple[int, int], List[ScoreRecord]] = defaultdict(list)
    for record in records:
        by_quarter[quarter_of_period(record.period_id)].append(record)

    return [
        quarter_score(employee_id, year, quarter, by_quarter[(year, quarter)])
        for year, quarter in sorted(by_quarter, reverse=True)
    ]
