import unittest
from datetime import date

from pydantic import ValidationError
from sqlalchemy import func, select

from inventory_insights.core.constants import RootCause
from inventory_insights.models.variance_tag import VarianceTag
from inventory_insights.schemas.variance import VarianceTagUpsert
from inventory_insights.services.variance_tag_service import (
    delete_variance_tag,
    list_variance_tags,
    upsert_variance_tag,
)
from tests.factories import DatabaseTestCase, add_item, add_restaurant, add_unit


class VarianceTagServiceTest(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.restaurant, self.branch = add_restaurant(self.db)
        unit = add_unit(self.db)
        self.item = add_item(self.db, self.restaurant, self.branch, "Beef", unit, avg_cost=0.01)
        self.db.commit()

    def _payload(self, **overrides):
        payload = {
            "restaurant_id": self.restaurant.id,
            "branch_id": self.branch.id,
            "inventory_item_id": self.item.id,
            "period_start": date(2026, 9, 1),
            "period_end": date(2026, 9, 7),
            "root_cause": "THEFT",
            "notes": "Back door left open",
            "variance_qty": -200,
            "variance_value": -2.0,
            "tagged_by": "manager@kastana",
        }
        payload.update(overrides)
        return payload

    def _tag_count(self):
        with self.Session() as db:
            return db.execute(select(func.count(VarianceTag.id))).scalar_one()

    def test_upsert_is_idempotent_per_period(self):
        first = upsert_variance_tag(self._payload(), session_factory=self.Session)
        second = upsert_variance_tag(
            self._payload(root_cause="DATA_ERROR", notes="Miscounted"),
            session_factory=self.Session,
        )

        self.assertEqual(self._tag_count(), 1)
        self.assertEqual(first.id, second.id)
        self.assertEqual(second.root_cause, RootCause.DATA_ERROR)
        self.assertEqual(second.notes, "Miscounted")

    def test_new_period_creates_new_tag(self):
        upsert_variance_tag(self._payload(), session_factory=self.Session)
        upsert_variance_tag(self._payload(period_end=date(2026, 9, 8)), session_factory=self.Session)

        self.assertEqual(self._tag_count(), 2)
        self.assertEqual(len(list_variance_tags(self.restaurant.id, session_factory=self.Session)), 2)

    def test_unknown_root_cause_is_rejected(self):
        with self.assertRaises(ValueError):
            upsert_variance_tag(self._payload(root_cause="ALIENS"), session_factory=self.Session)
        self.assertEqual(self._tag_count(), 0)

    def test_inverted_period_is_rejected(self):
        with self.assertRaises(ValidationError):
            VarianceTagUpsert(**self._payload(period_start=date(2026, 9, 8)))

    def test_delete(self):
        tag = upsert_variance_tag(self._payload(), session_factory=self.Session)

        self.assertTrue(delete_variance_tag(tag.id, session_factory=self.Session))
        self.assertFalse(delete_variance_tag(tag.id, session_factory=self.Session))
        self.assertEqual(self._tag_count(), 0)


if __name__ == "__main__":
    unittest.main()
