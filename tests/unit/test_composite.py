"""
Tests for the weighted composite score, check mark, and score edits.
"""

import itertools

import pytest

from credit_engine.models.composite import CompositeScorer
from credit_engine.models.records import ActivityRecord, ActivityValidationError, KeyResult
from tests.fixtures.sample_scores import make_record

CREDIT_VALUES = [0.0, 0.13, 0.5, 0.8, 0.99, 1.0]


class TestWeightedComposite:
    """Tests for fixed and dynamic WCS"""

    def test_fixed_weights(self):
        """Test the 40/50/10 split"""
        assert CompositeScorer.fixed_wcs(1.0, 1.0, 0.99) == 1.0
        assert CompositeScorer.fixed_wcs(0.5, 0.0, 0.0) == 0.2

    @pytest.mark.parametrize("ec,oc,cc", list(itertools.product(CREDIT_VALUES, repeat=3)))
    def test_dynamic_default_matches_fixed(self, ec, oc, cc):
        """Test dynamic weights 40/50/10 reproduce the fixed form"""
        weights = {"EC": 40, "OC": 50, "CC": 10}
        assert CompositeScorer.dynamic_wcs(ec, oc, cc, weights) == CompositeScorer.fixed_wcs(ec, oc, cc)

    def test_dynamic_without_weights_uses_defaults(self):
        """Test omitted weights fall back to 40/50/10"""
        assert CompositeScorer.dynamic_wcs(0.8, 0.5, 0.5) == CompositeScorer.fixed_wcs(0.8, 0.5, 0.5)

    def test_dynamic_custom_weights(self):
        """Test team weights shift the composite"""
        assert CompositeScorer.dynamic_wcs(1.0, 0.0, 0.0, {"EC": 70, "OC": 20, "CC": 10}) == 0.7

    def test_exact_tie_rounds_up(self):
        """Test a WCS landing exactly on a half cent rounds up"""
        assert CompositeScorer.fixed_wcs(0.0, 0.25, 0.0) == 0.13
        assert CompositeScorer.dynamic_wcs(0.0, 0.25, 0.0) == 0.13

    def test_single_quarter_key_result(self):
        """Test a lone key result scored 0.25 scores 0.13, not 0.12"""
        activity = ActivityRecord(employee_id="emp-001", period_id="2025-W07", key_results=(KeyResult(0.25),))
        assert CompositeScorer().score_activity(activity, validate=False).wcs == 0.13

    def test_misconfigured_weights_can_exceed_one(self):
        """Test weights over 100% are not normalised"""
        assert CompositeScorer.dynamic_wcs(1.0, 1.0, 1.0, {"EC": 50, "OC": 50, "CC": 20}) == 1.2


class TestCheckMark:
    """Tests for the check mark rule"""

    def test_full_hours_perfect_outcome(self):
        """Test 20+ hours and OC of exactly 1.0 earn a check mark"""
        assert CompositeScorer().check_mark(20, 1.0) is True

    def test_just_under_hours(self):
        """Test 19.9 hours never earn a check mark"""
        assert CompositeScorer().check_mark(19.9, 1.0) is False

    def test_near_perfect_outcome(self):
        """Test OC of 0.99 never earns a check mark regardless of hours"""
        assert CompositeScorer().check_mark(60, 0.99) is False

    def test_exact_equality_by_default(self):
        """Test OC a hair under 1.0 fails without a tolerance"""
        assert CompositeScorer().check_mark(25, 0.9995) is False

    def test_tolerance_accepts_rounding_noise(self):
        """Test a configured tolerance absorbs floating point drift"""
        scorer = CompositeScorer(check_mark_tolerance=0.001)
        assert scorer.check_mark(25, 0.9995) is True
        assert scorer.check_mark(25, 0.99) is False

    def test_from_credits(self):
        """Test stored records derive the check mark from the EC top band"""
        scorer = CompositeScorer()
        assert scorer.check_mark_from_credits(1.0, 1.0) is True
        assert scorer.check_mark_from_credits(0.8, 1.0) is False


class TestScoreActivity:
    """Tests for scoring whole activity records"""

    def test_perfect_week(self, perfect_activity):
        """Test a perfect week: EC 1, OC 1, CC 0.99, WCS 1.0, check mark"""
        record = CompositeScorer().score_activity(perfect_activity)
        assert record.ec == 1.0
        assert record.oc == 1.0
        assert record.cc == 0.99
        assert record.wcs == 1.0
        assert record.check_mark is True
        assert record.final_score == 1.0
        assert record.weights == {"EC": 40, "OC": 50, "CC": 10}

    def test_partial_week(self, partial_activity):
        """Test 12 hours with no key results: EC 0.5, OC 0, no check mark"""
        record = CompositeScorer().score_activity(partial_activity)
        assert record.ec == 0.5
        assert record.oc == 0
        assert record.cc == 0.0
        assert record.wcs == 0.2
        assert record.check_mark is False

    def test_weights_and_multiplier_applied(self, perfect_activity):
        """Test resolved weights shape WCS and the multiplier only shapes final score"""
        record = CompositeScorer().score_activity(
            perfect_activity, weights={"EC": 30, "OC": 60, "CC": 10}, multiplier=0.5
        )
        assert record.wcs == 1.0
        assert record.final_score == 0.5
        assert record.multiplier == 0.5

    def test_invalid_activity_rejected(self):
        """Test out-of-range inputs raise a validation error"""
        activity = ActivityRecord(employee_id="emp-009", period_id="2025-W07", hours_worked=-4)
        with pytest.raises(ActivityValidationError, match="hours_worked"):
            CompositeScorer().score_activity(activity)

    def test_validation_can_be_skipped(self):
        """Test raw formula scoring when the caller already validated"""
        activity = ActivityRecord(
            employee_id="emp-009",
            period_id="2025-W07",
            hours_worked=22,
            key_results=(KeyResult(score=1.5, weight=1),),
        )
        record = CompositeScorer().score_activity(activity, validate=False)
        assert record.oc == 1.5
        assert record.check_mark is False


class TestScoreEdits:
    """Tests for admin edits and recomputation"""

    def test_edit_recomputes_everything(self):
        """Test an edit refreshes EC, OC, CC, WCS and check mark together"""
        original = make_record(wcs=0.45, ec=0.5, oc=0.5, cc=0.2)
        edited = CompositeScorer().edit_score(original, hours_worked=21, key_result_score=1.0, cc=0.99)

        assert (edited.ec, edited.oc, edited.cc) == (1.0, 1.0, 0.99)
        assert edited.wcs == 1.0
        assert edited.check_mark is True
        assert edited.employee_id == original.employee_id
        assert edited.period_id == original.period_id

    @pytest.mark.parametrize(
        "hours,kr_score,cc,field",
        [
            (-5, 0.5, 0.5, "hours_worked"),
            (20, 4.0, 0.5, "key_result_score"),
            (20, -0.1, 0.5, "key_result_score"),
            (20, 0.5, 1.7, "cc"),
        ],
    )
    def test_edit_rejects_out_of_range(self, hours, kr_score, cc, field):
        """Test out-of-range edit values are rejected rather than saved or clamped"""
        with pytest.raises(ActivityValidationError, match=field):
            CompositeScorer().edit_score(make_record(), hours_worked=hours, key_result_score=kr_score, cc=cc)

    def test_edit_keeps_omitted_credits(self):
        """Test an edit without key-result score or CC keeps the stored OC and CC"""
        original = make_record(ec=0.8, oc=0.5, cc=0.46)
        edited = CompositeScorer().edit_score(original, hours_worked=16, cc=0.2)

        assert edited.oc == 0.5
        assert edited.cc == 0.2
        assert edited.wcs == 0.59

        assert CompositeScorer().edit_score(original, hours_worked=16).cc == 0.46

    def test_edit_does_not_mutate_original(self):
        """Test records are immutable; edits return a new record"""
        original = make_record(wcs=0.45)
        CompositeScorer().edit_score(original, hours_worked=21, key_result_score=1.0, cc=0.5)
        assert original.wcs == 0.45

    def test_edit_keeps_multiplier(self):
        """Test the multiplier carries over into the edited final score"""
        original = make_record(multiplier=2.0)
        edited = CompositeScorer().edit_score(original, hours_worked=10, key_result_score=0, cc=0)
        assert edited.wcs == 0.2
        assert edited.final_score == 0.4

    def test_recompute_after_cc_change(self):
        """Test changing only CC still recomputes WCS"""
        original = make_record(ec=1.0, oc=1.0, cc=0.0, wcs=0.9)
        updated = CompositeScorer().recompute(original, cc=1.0)
        assert updated.cc == 1.0
        assert updated.wcs == 1.0
        assert updated.check_mark is True

    def test_recompute_rejects_unknown_fields(self):
        """Test recompute refuses fields other than the credits"""
        with pytest.raises(TypeError, match="wcs"):
            CompositeScorer().recompute(make_record(), wcs=0.1)
