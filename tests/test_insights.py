import unittest
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select

from inventory_insights.core.constants import InsightSeverity, InsightType
from inventory_insights.models.insight_tracking import InsightTracking
from inventory_insights.schemas.insights import BaselineData, OperationalInsight, TodayActivity
from inventory_insights.services.insights_service import (
    advance_streak,
    compute_confidence_score,
    detect_insight_candidates,
    generate_operational_notes,
    get_operational_insights,
    reset_streak,
    severity_for,
)
from tests.factories import DatabaseTestCase, add_order, add_refund, add_restaurant, add_shift

BASELINE = BaselineData(
    avg_cancellations_after_payment=0.5,
    avg_discount_rate=5.0,
    avg_inventory_adjustments=0.0,
    avg_shift_duration_hours=8.0,
    avg_orders_per_day=20.0,
    active_days_count=5,
)
AFTERNOON = datetime(2026, 9, 10, 13)


def _insight(insight_type, severity=InsightSeverity.FIRST):
    return OperationalInsight(
        id="x",
        type=insight_type,
        severity=severity,
        detected_at=AFTERNOON,
        consecutive_days=1,
        current_value=1,
        baseline_value=1,
        deviation_percent=100,
    )


class InsightRulesTest(unittest.TestCase):
    def _types(self, now=AFTERNOON, **activity):
        activity.setdefault("total_orders", 10)
        activity.setdefault("total_revenue", 1000.0)
        candidates = detect_insight_candidates(BASELINE, TodayActivity(**activity), now)
        return [candidate.type for candidate in candidates]

    def test_quiet_day(self):
        self.assertEqual(self._types(), [])

    def test_refunds_need_more_than_one(self):
        self.assertEqual(self._types(cancellations_after_payment=1), [])
        self.assertEqual(
            self._types(cancellations_after_payment=2),
            [InsightType.REPEATED_CANCELLATION_AFTER_PAYMENT],
        )

    def test_discount_rate_and_count(self):
        self.assertEqual(
            self._types(total_discounts=100.0, discounted_orders=3),
            [InsightType.EXCESSIVE_DISCOUNTS],
        )
        self.assertEqual(self._types(total_discounts=100.0, discounted_orders=2), [])
        self.assertEqual(self._types(total_discounts=70.0, discounted_orders=5), [])

    def test_adjustments_without_baseline(self):
        self.assertEqual(
            self._types(repeated_inventory_adjustments=3),
            [InsightType.REPEATED_INVENTORY_ADJUSTMENTS],
        )
        self.assertEqual(self._types(repeated_inventory_adjustments=2), [])

    def test_long_open_shift(self):
        self.assertEqual(self._types(max_shift_hours=13, has_open_shift=True), [InsightType.LONG_OPEN_SHIFTS])
        self.assertEqual(self._types(max_shift_hours=12, has_open_shift=True), [])

    def test_no_sales_only_after_noon(self):
        quiet = {"total_orders": 0, "total_revenue": 0.0, "has_open_shift": True}
        self.assertEqual(self._types(**quiet), [InsightType.NO_SALES_DURING_HOURS])
        self.assertEqual(self._types(now=datetime(2026, 9, 10, 11, 59), **quiet), [])
        self.assertEqual(self._types(total_orders=0, total_revenue=0.0, has_open_shift=False), [])


class ConfidenceScoreTest(unittest.TestCase):
    def test_no_insights(self):
        self.assertEqual(compute_confidence_score([]), 100)

    def test_weighted_deductions(self):
        insights = [
            _insight(InsightType.REPEATED_CANCELLATION_AFTER_PAYMENT),
            _insight(InsightType.EXCESSIVE_DISCOUNTS, InsightSeverity.REPEATED),
        ]
        self.assertEqual(compute_confidence_score(insights), 80)

    def test_clamped_at_forty(self):
        insights = [_insight(insight_type, InsightSeverity.REPEATED) for insight_type in InsightType]
        self.assertEqual(compute_confidence_score(insights), 40)

    def test_at_most_three_notes(self):
        insights = [_insight(insight_type) for insight_type in InsightType]
        notes = generate_operational_notes(insights)
        self.assertEqual(len(notes), 3)
        self.assertEqual(notes[0], "Order cancellations after payment are higher than recent activity.")


class StreakTest(unittest.TestCase):
    def test_consecutive_days(self):
        today = date(2026, 9, 10)
        row = InsightTracking(consecutive_days=2, last_shown_date=today - timedelta(days=1))

        outcome = advance_streak(row, today)
        self.assertEqual((outcome.consecutive_days, outcome.already_shown), (3, False))
        self.assertEqual(severity_for(outcome.consecutive_days), InsightSeverity.REPEATED)

        again = advance_streak(row, today)
        self.assertEqual((again.consecutive_days, again.already_shown), (3, True))

    def test_gap_restarts_streak(self):
        row = InsightTracking(consecutive_days=4, last_shown_date=date(2026, 9, 1))
        self.assertEqual(advance_streak(row, date(2026, 9, 10)).consecutive_days, 1)

    def test_reset_keeps_same_day_detection(self):
        today = date(2026, 9, 10)
        row = InsightTracking(consecutive_days=2, last_shown_date=today)
        reset_streak(row, today)
        self.assertEqual(row.consecutive_days, 2)

        reset_streak(row, today + timedelta(days=1))
        self.assertEqual(row.consecutive_days, 0)


class OperationalInsightsTest(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.restaurant, self.branch = add_restaurant(self.db)

    def _paid_days(self, *days):
        for day in days:
            add_order(self.db, self.restaurant, self.branch, datetime(2026, 9, day, 12), total=100.0)

    def _refunds(self, day, count):
        for minute in range(count):
            add_refund(self.db, self.restaurant, self.branch, datetime(2026, 9, day, 9, minute))

    def _insights(self, day):
        return get_operational_insights(
            self.restaurant.id,
            now=datetime(2026, 9, day, 11),
            session_factory=self.Session,
        )

    def test_new_restaurant_is_not_evaluated(self):
        self._paid_days(7, 8)
        self._refunds(10, 5)
        self.db.commit()

        result = self._insights(10)

        self.assertTrue(result.is_new_restaurant)
        self.assertEqual(result.insights, [])
        self.assertEqual(result.confidence_score, 100)
        self.assertEqual(result.baseline.active_days_count, 2)

    def test_streak_is_tracked_across_days(self):
        self._paid_days(7, 8, 9)
        self._refunds(10, 2)
        self._refunds(11, 2)
        self._refunds(12, 3)
        self.db.commit()

        first = self._insights(10)
        self.assertFalse(first.is_new_restaurant)
        self.assertEqual(len(first.insights), 1)
        insight = first.insights[0]
        self.assertEqual(insight.type, InsightType.REPEATED_CANCELLATION_AFTER_PAYMENT)
        self.assertEqual(insight.id, "cancellation_20260910")
        self.assertEqual(insight.severity, InsightSeverity.FIRST)
        self.assertEqual(insight.consecutive_days, 1)
        self.assertFalse(insight.already_shown)
        self.assertEqual(first.confidence_score, 90)
        self.assertEqual(first.operational_notes, ["Order cancellations after payment are higher than recent activity."])

        repeat = self._insights(10).insights[0]
        self.assertTrue(repeat.already_shown)
        self.assertEqual(repeat.consecutive_days, 1)

        self.assertEqual(self._insights(11).insights[0].consecutive_days, 2)

        third = self._insights(12)
        self.assertEqual(third.insights[0].consecutive_days, 3)
        self.assertEqual(third.insights[0].severity, InsightSeverity.REPEATED)
        self.assertEqual(third.confidence_score, 85)

        quiet = self._insights(13)
        self.assertEqual(quiet.insights, [])
        with self.Session() as db:
            row = db.execute(
                select(InsightTracking).where(
                    InsightTracking.restaurant_id == self.restaurant.id,
                    InsightTracking.insight_type == InsightType.REPEATED_CANCELLATION_AFTER_PAYMENT.value,
                )
            ).scalar_one()
        self.assertEqual(row.consecutive_days, 0)
        self.assertEqual(row.last_shown_date, date(2026, 9, 12))

    def test_aware_now_with_open_shift(self):
        self._paid_days(6, 7, 8)
        add_shift(self.db, self.restaurant, self.branch, datetime(2026, 9, 9, 8))
        self.db.commit()

        result = get_operational_insights(
            self.restaurant.id,
            now=datetime(2026, 9, 10, 15, tzinfo=timezone.utc),
            session_factory=self.Session,
        )

        self.assertFalse(result.is_new_restaurant)
        self.assertEqual(result.baseline.active_days_count, 3)
        self.assertIn(InsightType.LONG_OPEN_SHIFTS, [insight.type for insight in result.insights])

    def test_missing_restaurant(self):
        result = get_operational_insights(0, session_factory=self.Session)
        self.assertTrue(result.is_new_restaurant)
        self.assertEqual(result.confidence_score, 100)


if __name__ == "__main__":
    unittest.main()
