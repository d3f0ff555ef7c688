"""Score record builders shared by unit, integration and dashboard tests"""

from credit_engine.models.records import ScoreRecord


def make_record(employee_id="emp-001", period_id="2025-W10", wcs=0.9, check_mark=False, **overrides):
    """Score record with plausible credits; only wcs/check_mark matter for aggregation"""
    fields = {
        "employee_id": employee_id,
        "period_id": period_id,
        "ec": 1.0 if check_mark else 0.8,
        "oc": 1.0 if check_mark else 0.5,
        "cc": 0.5,
        "wcs": wcs,
        "check_mark": check_mark,
        "created_at": "2025-03-07T17:00:00",
    }
    fields.update(overrides)
    return ScoreRecord(**fields)


def make_history(employee_id, scores, start_week=40, year=2025, check_marks=()):
    """Most-recent-first history: scores[0] lands in ``start_week``, then one week back per item

    Args:
        scores: WCS values, most recent first
        check_marks: indexes (into scores) that carry a check mark
    """
    return [
        make_record(
            employee_id=employee_id,
            period_id=f"{year}-W{start_week - i:02d}",
            wcs=wcs,
            check_mark=i in check_marks,
        )
        for i, wcs in enumerate(scores)
    ]
