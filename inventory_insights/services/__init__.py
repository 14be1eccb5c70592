from inventory_insights.services.alert_service import get_inventory_alerts
from inventory_insights.services.baseline_service import calculate_baseline, get_today_activity
from inventory_insights.services.consumption_service import (
    get_actual_consumption,
    get_consumption_variance,
    get_items_without_recipes,
    get_theoretical_consumption,
    summarize_consumption_variance,
)
from inventory_insights.services.insights_service import get_operational_insights
from inventory_insights.services.recipe_service import save_recipe
from inventory_insights.services.trend_service import (
    get_top_variance_items,
    get_variance_breakdown,
    get_variance_summary,
    get_variance_trends,
)
from inventory_insights.services.variance_tag_service import (
    delete_variance_tag,
    list_variance_tags,
    upsert_variance_tag,
)

__all__ = [
    "calculate_baseline",
    "delete_variance_tag",
    "get_actual_consumption",
    "get_consumption_variance",
    "get_inventory_alerts",
    "get_items_without_recipes",
    "get_operational_insights",
    "get_theoretical_consumption",
    "get_today_activity",
    "get_top_variance_items",
    "get_variance_breakdown",
    "get_variance_summary",
    "get_variance_trends",
    "list_variance_tags",
    "save_recipe",
    "summarize_consumption_variance",
    "upsert_variance_tag",
]
