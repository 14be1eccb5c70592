import importlib

from inventory_insights.models.insight_tracking import InsightTracking
from inventory_insights.models.inventory import InventoryItem, InventoryUnit
from inventory_insights.models.order import Order, OrderItem, Refund
from inventory_insights.models.recipe import MenuItem, Recipe, RecipeLine
from inventory_insights.models.restaurant import Branch, Restaurant
from inventory_insights.models.shift import Shift
from inventory_insights.models.stock_count import StockCount, StockCountLine
from inventory_insights.models.transaction import InventoryTransaction
from inventory_insights.models.variance_tag import VarianceTag


def import_all_models() -> None:
    for module_name in (
        "inventory_insights.models.insight_tracking",
        "inventory_insights.models.inventory",
        "inventory_insights.models.order",
        "inventory_insights.models.recipe",
        "inventory_insights.models.restaurant",
        "inventory_insights.models.shift",
        "inventory_insights.models.stock_count",
        "inventory_insights.models.transaction",
        "inventory_insights.models.variance_tag",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Branch",
    "InsightTracking",
    "InventoryItem",
    "InventoryTransaction",
    "InventoryUnit",
    "MenuItem",
    "Order",
    "OrderItem",
    "Recipe",
    "RecipeLine",
    "Refund",
    "Restaurant",
    "Shift",
    "StockCount",
    "StockCountLine",
    "VarianceTag",
    "import_all_models",
]
