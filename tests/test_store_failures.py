from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.core.constants import RootCause, TxnType
from inventory_insights.database import Base
from inventory_insights.models.insight_tracking import InsightTracking
from inventory_insights.models.variance_tag import VarianceTag
from inventory_insights.schemas.trends import VarianceSummary
from inventory_insights.services.alert_service import get_inventory_alerts
from inventory_insights.services.consumption_service import (
    get_actual_consumption,
    get_consumption_variance,
    get_items_without_recipes,
)
from inventory_insights.services.insights_service import get_operational_insights
from inventory_insights.services.ledger_reader import fetch_approved_counts, fetch_transactions
from inventory_insights.services.trend_service import (
    get_top_variance_items,
    get_variance_breakdown,
    get_variance_summary,
    get_variance_trends,
)
from inventory_insights.services.variance_tag_service import delete_variance_tag, upsert_variance_tag
from tests.factories import DatabaseTestCase, add_order, add_refund, add_restaurant

START = date(2026, 9, 1)
END = date(2026, 9, 7)


class MissingTablesTest(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.restaurant, self.branch = add_restaurant(self.db)
        self.db.commit()
        self.restaurant_id, self.branch_id = self.restaurant.id, self.branch.id
        Base.metadata.drop_all(bind=self.engine)

    def test_ledger_reads_degrade_to_empty(self):
        with self.Session() as db:
            self.assertEqual(
                fetch_transactions(
                    db,
                    self.restaurant_id,
                    datetime(2026, 9, 1),
                    datetime(2026, 9, 8),
                    [TxnType.SALE_DEDUCTION],
                ),
                [],
            )
            self.assertEqual(fetch_approved_counts(db, self.restaurant_id, datetime(2026, 9, 1)), [])

    def test_top_level_queries_degrade_to_defaults(self):
        session = {"session_factory": self.Session}

        self.assertEqual(get_consumption_variance(self.restaurant_id, self.branch_id, START, END, **session), [])
        self.assertEqual(get_actual_consumption(self.restaurant_id, self.branch_id, START, END, **session), {})
        self.assertEqual(get_items_without_recipes(self.restaurant_id, self.branch_id, today=END, **session), [])
        self.assertEqual(get_inventory_alerts(self.restaurant_id, today=END, **session), [])
        self.assertEqual(get_variance_trends(self.restaurant_id, today=END, **session), [])
        self.assertEqual(get_top_variance_items(self.restaurant_id, today=END, **session), [])
        self.assertEqual(get_variance_breakdown(self.restaurant_id, today=END, **session), [])
        self.assertEqual(get_variance_summary(self.restaurant_id, today=END, **session), VarianceSummary())

        insights = get_operational_insights(self.restaurant_id, now=datetime(2026, 9, 10, 15), **session)
        self.assertEqual(insights.insights, [])
        self.assertEqual(insights.confidence_score, 100)


class BrokenWritesTest(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.restaurant, self.branch = add_restaurant(self.db)
        self.db.commit()

    def test_tag_write_failure_propagates(self):
        VarianceTag.__table__.drop(bind=self.engine)
        payload = {
            "restaurant_id": self.restaurant.id,
            "branch_id": self.branch.id,
            "inventory_item_id": 1,
            "period_start": START,
            "period_end": END,
            "root_cause": RootCause.OVER_PORTIONING,
        }

        with self.assertRaises(SQLAlchemyError):
            upsert_variance_tag(payload, session_factory=self.Session)
        with self.assertRaises(SQLAlchemyError):
            delete_variance_tag(1, session_factory=self.Session)

    def test_tracking_failure_returns_empty_insights(self):
        for day in (7, 8, 9):
            add_order(self.db, self.restaurant, self.branch, datetime(2026, 9, day, 12), total=100.0)
        for minute in range(3):
            add_refund(self.db, self.restaurant, self.branch, datetime(2026, 9, 10, 9, minute))
        self.db.commit()
        InsightTracking.__table__.drop(bind=self.engine)

        result = get_operational_insights(
            self.restaurant.id,
            now=datetime(2026, 9, 10, 11),
            session_factory=self.Session,
        )

        self.assertFalse(result.is_new_restaurant)
        self.assertEqual(result.insights, [])
        self.assertEqual(result.confidence_score, 100)
