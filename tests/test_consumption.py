import unittest
from datetime import date, datetime
from types import SimpleNamespace

from inventory_insights.core.constants import RootCause, TxnType
from inventory_insights.models import InventoryTransaction
from inventory_insights.services.consumption_service import (
    consumed_quantity,
    get_actual_consumption,
    get_consumption_variance,
    get_items_without_recipes,
    get_theoretical_consumption,
    reconcile_variance,
    select_recipe_per_menu_item,
    summarize_consumption_variance,
    variance_percentage,
)
from inventory_insights.services.variance_tag_service import upsert_variance_tag
from tests.factories import (
    DatabaseTestCase,
    add_branch,
    add_item,
    add_menu_item,
    add_order,
    add_recipe,
    add_restaurant,
    add_txn,
    add_unit,
)

START = date(2026, 9, 1)
END = date(2026, 9, 7)


class ConsumedQuantityTest(unittest.TestCase):
    def test_outflows_count_as_absolute_quantity(self):
        self.assertEqual(consumed_quantity(TxnType.SALE_DEDUCTION, -200), 200)
        self.assertEqual(consumed_quantity("WASTE", -15.5), 15.5)
        self.assertEqual(consumed_quantity(TxnType.ADJUSTMENT_OUT, -3), 3)

    def test_stock_count_adjustment_counts_only_removals(self):
        self.assertEqual(consumed_quantity(TxnType.STOCK_COUNT_ADJUSTMENT, -40), 40)
        self.assertEqual(consumed_quantity(TxnType.STOCK_COUNT_ADJUSTMENT, 25), 0.0)

    def test_inflows_are_not_consumption(self):
        for txn_type in (
            TxnType.ADJUSTMENT_IN,
            TxnType.REFUND,
            TxnType.PURCHASE,
            TxnType.TRANSFER_IN,
            TxnType.TRANSFER_OUT,
        ):
            self.assertEqual(consumed_quantity(txn_type, 10), 0.0)

    def test_unknown_type_is_rejected(self):
        with self.assertRaises(ValueError):
            consumed_quantity("GIFT", 1)


class VarianceMathTest(unittest.TestCase):
    def test_percentage_without_theoretical(self):
        self.assertEqual(variance_percentage(0, 5), 100.0)
        self.assertEqual(variance_percentage(0, 0), 0.0)
        self.assertAlmostEqual(variance_percentage(2000, 1800), -10.0)

    def test_branch_recipe_beats_restaurant_recipe(self):
        recipes = [
            SimpleNamespace(id=9, menu_item_id=1, branch_id=None),
            SimpleNamespace(id=4, menu_item_id=1, branch_id=3),
            SimpleNamespace(id=5, menu_item_id=2, branch_id=None),
            SimpleNamespace(id=7, menu_item_id=2, branch_id=None),
        ]
        self.assertEqual(select_recipe_per_menu_item(recipes), {4: 1, 7: 2})

    def test_reconcile_orders_by_cost_then_item_id(self):
        items = [
            SimpleNamespace(id=1, name="Salt", branch_id=1, avg_cost=0.0, unit_name="g", branch_name="A"),
            SimpleNamespace(id=2, name="Beef", branch_id=1, avg_cost=2.0, unit_name="g", branch_name="A"),
            SimpleNamespace(id=3, name="Oil", branch_id=1, avg_cost=1.0, unit_name="ml", branch_name="A"),
            SimpleNamespace(id=4, name="Flour", branch_id=1, avg_cost=4.0, unit_name="g", branch_name="A"),
            SimpleNamespace(id=5, name="Idle", branch_id=1, avg_cost=9.0, unit_name="g", branch_name="A"),
        ]
        theoretical = {1: 10.0, 2: 10.0, 3: 10.0, 4: 10.0}
        actual = {1: 15.0, 2: 5.0, 3: 14.0, 4: 12.5}

        results = reconcile_variance(theoretical, actual, items)

        self.assertEqual([entry.inventory_item_id for entry in results], [2, 4, 3, 1])
        self.assertEqual(results[0].variance_cost, -10.0)
        self.assertEqual(results[1].variance_cost, 10.0)


class ConsumptionVarianceTest(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.restaurant, self.branch = add_restaurant(self.db)
        self.grams = add_unit(self.db, "gram", "g")
        self.pieces = add_unit(self.db, "piece", "pc")
        self.beef = add_item(self.db, self.restaurant, self.branch, "Beef", self.grams, avg_cost=0.01)
        self.burger = add_menu_item(self.db, self.restaurant, "Burger")
        add_recipe(self.db, self.restaurant, self.burger, [(self.beef, 200)])

    def _variance(self, start=START, end=END, branch=None):
        return get_consumption_variance(
            self.restaurant.id,
            (branch or self.branch).id,
            start,
            end,
            session_factory=self.Session,
        )

    def test_burger_scenario(self):
        add_order(self.db, self.restaurant, self.branch, datetime(2026, 9, 3, 12), [(self.burger, 10)])
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.SALE_DEDUCTION, -1800, datetime(2026, 9, 3, 12))
        self.db.commit()

        results = self._variance()

        self.assertEqual(len(results), 1)
        row = results[0]
        self.assertEqual(row.inventory_item_id, self.beef.id)
        self.assertEqual(row.unit_name, "gram")
        self.assertEqual(row.branch_name, "Downtown")
        self.assertAlmostEqual(row.theoretical_consumption, 2000)
        self.assertAlmostEqual(row.actual_consumption, 1800)
        self.assertAlmostEqual(row.variance, -200)
        self.assertAlmostEqual(row.variance_percentage, -10.0)
        self.assertAlmostEqual(row.variance_cost, -2.0)
        self.assertIsNone(row.root_cause_tag)

    def test_zero_variance_is_reported(self):
        add_order(self.db, self.restaurant, self.branch, datetime(2026, 9, 2, 9), [(self.burger, 3)])
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.SALE_DEDUCTION, -600, datetime(2026, 9, 2, 9))
        self.db.commit()

        row = self._variance()[0]

        self.assertEqual(row.variance, 0)
        self.assertEqual(row.variance_percentage, 0)
        self.assertEqual(row.variance_cost, 0)

    def test_items_without_activity_are_excluded(self):
        cheese = add_item(self.db, self.restaurant, self.branch, "Cheese", self.grams, avg_cost=0.02)
        add_txn(self.db, self.restaurant, self.branch, cheese, TxnType.PURCHASE, 5000, datetime(2026, 9, 2, 8))
        self.db.commit()

        self.assertEqual(self._variance(), [])

    def test_actual_only_item_has_full_percentage(self):
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.WASTE, -150, datetime(2026, 9, 4, 22))
        self.db.commit()

        row = self._variance()[0]

        self.assertEqual(row.theoretical_consumption, 0)
        self.assertEqual(row.actual_consumption, 150)
        self.assertEqual(row.variance_percentage, 100.0)

    def test_only_paid_non_voided_lines_drive_theoretical(self):
        add_order(self.db, self.restaurant, self.branch, datetime(2026, 9, 2, 12), [(self.burger, 2)])
        add_order(self.db, self.restaurant, self.branch, datetime(2026, 9, 2, 13), [(self.burger, 5, True)])
        add_order(
            self.db,
            self.restaurant,
            self.branch,
            datetime(2026, 9, 2, 14),
            [(self.burger, 4)],
            status="cancelled",
        )
        add_order(self.db, self.restaurant, self.branch, datetime(2026, 9, 2, 15), [(None, 1)])
        self.db.commit()

        theoretical = get_theoretical_consumption(
            self.restaurant.id, self.branch.id, START, END, session_factory=self.Session
        )

        self.assertEqual(theoretical, {self.beef.id: 400})

    def test_end_date_is_inclusive(self):
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.SALE_DEDUCTION, -100, datetime(2026, 9, 7, 23, 59))
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.SALE_DEDUCTION, -900, datetime(2026, 9, 8, 0, 0))
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.SALE_DEDUCTION, -50, datetime(2026, 9, 1, 0, 0))
        self.db.commit()

        actual = get_actual_consumption(self.restaurant.id, self.branch.id, START, END, session_factory=self.Session)

        self.assertEqual(actual, {self.beef.id: 150})

    def test_stock_count_overage_is_not_consumption(self):
        at = datetime(2026, 9, 5, 23)
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.STOCK_COUNT_ADJUSTMENT, 300, at)
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.STOCK_COUNT_ADJUSTMENT, -40, at)
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.ADJUSTMENT_IN, 70, at)
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.ADJUSTMENT_OUT, -10, at)
        self.db.commit()

        actual = get_actual_consumption(self.restaurant.id, self.branch.id, START, END, session_factory=self.Session)

        self.assertEqual(actual, {self.beef.id: 50})

    def test_recipe_line_in_foreign_unit_is_skipped(self):
        bun = add_item(self.db, self.restaurant, self.branch, "Bun", self.pieces)
        slider = add_menu_item(self.db, self.restaurant, "Slider")
        add_recipe(self.db, self.restaurant, slider, [(self.beef, 80), (bun, 1, self.grams.id)])
        add_order(self.db, self.restaurant, self.branch, datetime(2026, 9, 2, 12), [(slider, 2)])
        self.db.commit()

        with self.assertLogs("inventory_insights.services.consumption_service", level="WARNING"):
            theoretical = get_theoretical_consumption(
                self.restaurant.id, self.branch.id, START, END, session_factory=self.Session
            )

        self.assertEqual(theoretical, {self.beef.id: 160})

    def test_branch_filter(self):
        uptown = add_branch(self.db, self.restaurant, "Uptown")
        add_order(self.db, self.restaurant, uptown, datetime(2026, 9, 2, 12), [(self.burger, 4)])
        self.db.commit()

        self.assertEqual(self._variance(), [])
        self.assertEqual(len(self._variance(branch=uptown)), 1)

    def test_tag_is_attached_to_matching_period(self):
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.WASTE, -150, datetime(2026, 9, 4, 22))
        self.db.commit()
        self.assertIsNone(self._variance()[0].root_cause_tag)

        tag = upsert_variance_tag(
            {
                "restaurant_id": self.restaurant.id,
                "branch_id": self.branch.id,
                "inventory_item_id": self.beef.id,
                "period_start": START,
                "period_end": END,
                "root_cause": "WASTE",
                "notes": "Dropped tray",
            },
            session_factory=self.Session,
        )

        row = self._variance()[0]
        self.assertEqual(row.root_cause_tag, RootCause.WASTE)
        self.assertEqual(row.root_cause_notes, "Dropped tray")
        self.assertEqual(row.tag_id, tag.id)
        self.assertIsNone(self._variance(end=date(2026, 9, 8))[0].root_cause_tag)

    def test_missing_ids_return_empty(self):
        self.assertEqual(get_consumption_variance(0, self.branch.id, START, END, session_factory=self.Session), [])
        self.assertEqual(get_consumption_variance(self.restaurant.id, None, START, END, session_factory=self.Session), [])

    def test_summary(self):
        fries = add_item(self.db, self.restaurant, self.branch, "Potato", self.grams, avg_cost=0.001)
        add_order(self.db, self.restaurant, self.branch, datetime(2026, 9, 3, 12), [(self.burger, 10)])
        add_txn(self.db, self.restaurant, self.branch, self.beef, TxnType.SALE_DEDUCTION, -1800, datetime(2026, 9, 3, 12))
        add_txn(self.db, self.restaurant, self.branch, fries, TxnType.WASTE, -500, datetime(2026, 9, 3, 12))
        self.db.commit()

        summary = summarize_consumption_variance(self._variance())

        self.assertEqual(summary.total_items, 2)
        self.assertEqual(summary.items_with_variance, 2)
        self.assertAlmostEqual(summary.total_positive_variance, 500)
        self.assertAlmostEqual(summary.total_negative_variance, 200)
        self.assertAlmostEqual(summary.net_variance_cost, -1.5)
        self.assertEqual(summary.tagged_count, 0)
        self.assertEqual(summary.untagged_count, 2)


class ItemsWithoutRecipesTest(DatabaseTestCase):
    def test_sold_items_without_active_recipe(self):
        restaurant, branch = add_restaurant(self.db)
        grams = add_unit(self.db)
        beef = add_item(self.db, restaurant, branch, "Beef", grams)
        burger = add_menu_item(self.db, restaurant, "Burger")
        soda = add_menu_item(self.db, restaurant, "Soda")
        salad = add_menu_item(self.db, restaurant, "Salad")
        add_recipe(self.db, restaurant, burger, [(beef, 200)])
        add_recipe(self.db, restaurant, salad, [(beef, 10)], is_active=False)
        add_order(self.db, restaurant, branch, datetime(2026, 9, 2, 12), [(burger, 2), (soda, 3), (salad, 5)])
        add_order(self.db, restaurant, branch, datetime(2026, 9, 3, 12), [(soda, 1)])
        self.db.commit()

        missing = get_items_without_recipes(restaurant.id, branch.id, session_factory=self.Session)

        self.assertEqual(
            [(entry.menu_item_name, entry.sold_count) for entry in missing],
            [("Salad", 5), ("Soda", 4)],
        )


class DefaultTimestampTest(DatabaseTestCase):
    def test_unstamped_entry_lands_in_todays_window(self):
        restaurant, branch = add_restaurant(self.db)
        beef = add_item(self.db, restaurant, branch, "Beef", add_unit(self.db))
        txn = InventoryTransaction(
            restaurant_id=restaurant.id,
            branch_id=branch.id,
            item_id=beef.id,
            txn_type=TxnType.WASTE.value,
            qty_in_base=-5,
        )
        self.db.add(txn)
        self.db.commit()

        self.assertIsNone(txn.created_at.tzinfo)
        today = txn.created_at.date()
        actual = get_actual_consumption(restaurant.id, branch.id, today, today, session_factory=self.Session)
        self.assertEqual(actual, {beef.id: 5})


if __name__ == "__main__":
    unittest.main()
