from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.config import Settings, get_settings
from inventory_insights.core.cache import TTLCache
from inventory_insights.core.constants import AlertSeverity, AlertType
from inventory_insights.core.dates import start_of_day, week_start
from inventory_insights.database.session import SessionLocal
from inventory_insights.schemas.alert import AlertData, InventoryAlert
from inventory_insights.services.ledger_reader import CountSnapshot, fetch_approved_counts

logger = logging.getLogger(__name__)
settings = get_settings()

alerts_cache = TTLCache(settings.ALERTS_CACHE_SECONDS)

_SEVERITY_RANK = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.WARNING: 1,
}

_SHORTAGE_REVIEW = (
    "Review: (1) Recipe accuracy - portions may be larger than defined. "
    "(2) Waste logging - check if waste is being recorded. "
    "(3) Theft or unrecorded usage. "
    "(4) Receiving errors - verify deliveries match invoices."
)
_OVERAGE_REVIEW = (
    "Review: (1) Recipe accuracy - portions may be smaller than defined. "
    "(2) Over-receiving - check if more stock is received than invoiced. "
    "(3) Stock count procedure - ensure counters are properly trained."
)
_NEW_VARIANCE_REVIEW = (
    "Review: (1) Recent recipe changes or menu updates. "
    "(2) New staff who may need training. "
    "(3) Supplier changes or quality issues. "
    "(4) Equipment malfunction (e.g., portion scales)."
)
_SPIKE_SHORTAGE_REVIEW = (
    "Immediate review recommended: (1) Check for unusual waste events. "
    "(2) Review refunds involving this item. "
    "(3) Verify no bulk spoilage or theft. "
    "(4) Cross-check with sales data for anomalies."
)
_SPIKE_OVERAGE_REVIEW = (
    "Review: (1) Check for receiving errors or duplicate deliveries. "
    "(2) Verify stock count accuracy. "
    "(3) Review any returns from kitchen to storage."
)
_TREND_REVIEW = (
    "This pattern indicates a growing problem that should be addressed: "
    "(1) Review operational changes that coincide with when the trend started. "
    "(2) Re-train staff on portion control and waste logging. "
    "(3) Audit recipe definitions against actual preparation. "
    "(4) Consider more frequent stock counts to catch issues earlier."
)


@dataclass(frozen=True)
class AlertThresholds:
    min_variance_qty: float = 1.0
    repeated_occurrences: int = 2
    spike_percent: float = 0.5
    trend_weeks: int = 4
    worsening_percent: float = 0.25
    lookback_days: int = 60

    @classmethod
    def from_settings(cls, app_settings: Optional[Settings] = None) -> AlertThresholds:
        app_settings = app_settings or get_settings()
        return cls(
            min_variance_qty=app_settings.VARIANCE_MIN_QTY,
            repeated_occurrences=app_settings.VARIANCE_REPEATED_OCCURRENCES,
            spike_percent=app_settings.VARIANCE_SPIKE_PERCENT,
            trend_weeks=app_settings.VARIANCE_TREND_WEEKS,
            worsening_percent=app_settings.VARIANCE_WORSENING_PERCENT,
            lookback_days=app_settings.ALERT_LOOKBACK_DAYS,
        )


def _group_by_branch(counts) -> dict[int, list[CountSnapshot]]:
    grouped: dict[int, list[CountSnapshot]] = {}
    for count in counts:
        grouped.setdefault(count.branch_id, []).append(count)
    for branch_counts in grouped.values():
        branch_counts.sort(key=lambda count: (count.approved_at, count.id))
    return grouped


def detect_repeated_high_variance(counts, thresholds: AlertThresholds = AlertThresholds()):
    alerts = []
    for branch_id, branch_counts in _group_by_branch(counts).items():
        occurrences_by_item: dict[int, list] = {}
        for count in branch_counts:
            for line in count.lines:
                if abs(line.variance) < thresholds.min_variance_qty:
                    continue
                occurrences_by_item.setdefault(line.item_id, []).append((count, line))

        for item_id, occurrences in occurrences_by_item.items():
            occurrence_count = len(occurrences)
            if occurrence_count < thresholds.repeated_occurrences:
                continue

            latest_count, latest_line = occurrences[-1]
            avg_variance = sum(abs(line.variance) for _, line in occurrences) / occurrence_count
            shortages = sum(1 for _, line in occurrences if line.variance < 0)
            is_shortage = shortages > occurrence_count / 2
            direction = "shortage" if is_shortage else "overage"

            alerts.append(
                InventoryAlert(
                    id="repeated-{}".format(item_id),
                    type=AlertType.REPEATED_HIGH_VARIANCE,
                    severity=AlertSeverity.CRITICAL if occurrence_count >= 3 else AlertSeverity.WARNING,
                    item_id=item_id,
                    item_name=latest_line.item_name,
                    branch_id=branch_id,
                    branch_name=latest_count.branch_name,
                    title="Repeated {} on {}".format(direction, latest_line.item_name),
                    explanation=(
                        "This item has shown significant variance in {} of the last {} stock counts. "
                        "Average variance: {:.2f} {}. This pattern suggests a systematic issue "
                        "rather than random error."
                    ).format(
                        occurrence_count,
                        len(branch_counts),
                        avg_variance,
                        latest_line.unit_name,
                    ),
                    suggestion=_SHORTAGE_REVIEW if is_shortage else _OVERAGE_REVIEW,
                    data=AlertData(
                        occurrences=occurrence_count,
                        current_variance=abs(latest_line.variance),
                        unit_name=latest_line.unit_name,
                    ),
                    detected_at=latest_count.approved_at,
                )
            )
    return alerts


def detect_variance_spikes(counts, thresholds: AlertThresholds = AlertThresholds()):
    alerts = []
    for branch_id, branch_counts in _group_by_branch(counts).items():
        if len(branch_counts) < 2:
            continue
        previous_count, latest_count = branch_counts[-2], branch_counts[-1]
        previous_variances = {line.item_id: abs(line.variance) for line in previous_count.lines}
        days_between = (latest_count.approved_at.date() - previous_count.approved_at.date()).days

        for line in latest_count.lines:
            current = abs(line.variance)
            if current < thresholds.min_variance_qty:
                continue

            previous = previous_variances.get(line.item_id, 0.0)
            if previous <= 0:
                if current < thresholds.min_variance_qty * 3:
                    continue
                alerts.append(
                    InventoryAlert(
                        id="spike-new-{}".format(line.item_id),
                        type=AlertType.VARIANCE_SPIKE,
                        severity=AlertSeverity.WARNING,
                        item_id=line.item_id,
                        item_name=line.item_name,
                        branch_id=branch_id,
                        branch_name=latest_count.branch_name,
                        title="New variance detected on {}".format(line.item_name),
                        explanation=(
                            "This item showed {} of {:.2f} {} in the latest stock count, but had no "
                            "significant variance previously. This sudden appearance warrants investigation."
                        ).format(
                            "an overage" if line.variance > 0 else "a shortage",
                            current,
                            line.unit_name,
                        ),
                        suggestion=_NEW_VARIANCE_REVIEW,
                        data=AlertData(
                            current_variance=current,
                            previous_variance=0.0,
                            unit_name=line.unit_name,
                        ),
                        detected_at=latest_count.approved_at,
                    )
                )
                continue

            increase = (current - previous) / previous
            if increase < thresholds.spike_percent or current < thresholds.min_variance_qty * 2:
                continue

            percent_increase = round(increase * 100)
            alerts.append(
                InventoryAlert(
                    id="spike-{}".format(line.item_id),
                    type=AlertType.VARIANCE_SPIKE,
                    severity=AlertSeverity.CRITICAL if percent_increase >= 100 else AlertSeverity.WARNING,
                    item_id=line.item_id,
                    item_name=line.item_name,
                    branch_id=branch_id,
                    branch_name=latest_count.branch_name,
                    title="Variance spike on {} (+{}%)".format(line.item_name, percent_increase),
                    explanation=(
                        "Variance on this item jumped from {:.2f} to {:.2f} {} - a {}% increase since "
                        "the last stock count ({} days ago)."
                    ).format(previous, current, line.unit_name, percent_increase, days_between),
                    suggestion=_SPIKE_SHORTAGE_REVIEW if line.variance < 0 else _SPIKE_OVERAGE_REVIEW,
                    data=AlertData(
                        current_variance=current,
                        previous_variance=previous,
                        percentage_change=percent_increase,
                        unit_name=line.unit_name,
                    ),
                    detected_at=latest_count.approved_at,
                )
            )
    return alerts


def _weekly_averages(branch_counts, thresholds: AlertThresholds):
    """item_id -> [(week, avg |variance|, latest count, latest line)] for the last N weeks."""
    weekly: dict[int, dict[date, list]] = {}
    for count in branch_counts:
        week = week_start(count.approved_at)
        for line in count.lines:
            if abs(line.variance) < thresholds.min_variance_qty:
                continue
            weekly.setdefault(line.item_id, {}).setdefault(week, []).append((count, line))

    averages = {}
    for item_id, weeks in weekly.items():
        series = []
        for week in sorted(weeks)[-thresholds.trend_weeks:]:
            entries = weeks[week]
            avg = sum(abs(line.variance) for _, line in entries) / len(entries)
            latest_count, latest_line = entries[-1]
            series.append((week, avg, latest_count, latest_line))
        averages[item_id] = series
    return averages


def detect_worsening_trends(counts, thresholds: AlertThresholds = AlertThresholds()):
    alerts = []
    for branch_id, branch_counts in _group_by_branch(counts).items():
        if len(branch_counts) < 3:
            continue

        for item_id, series in _weekly_averages(branch_counts, thresholds).items():
            if len(series) < 3:
                continue

            worsening = 0
            for (_, prev_avg, _, _), (_, curr_avg, _, _) in zip(series, series[1:]):
                if prev_avg > 0 and (curr_avg - prev_avg) / prev_avg >= thresholds.worsening_percent:
                    worsening += 1
            if worsening < 2:
                continue

            first_avg = series[0][1]
            _, last_avg, latest_count, latest_line = series[-1]
            total_increase = (last_avg - first_avg) / first_avg * 100 if first_avg > 0 else 0.0
            unit_name = latest_line.unit_name

            alerts.append(
                InventoryAlert(
                    id="trend-{}".format(item_id),
                    type=AlertType.WORSENING_TREND,
                    severity=AlertSeverity.CRITICAL if total_increase >= 100 else AlertSeverity.WARNING,
                    item_id=item_id,
                    item_name=latest_line.item_name,
                    branch_id=branch_id,
                    branch_name=latest_count.branch_name,
                    title="Worsening variance trend on {}".format(latest_line.item_name),
                    explanation=(
                        "Variance on this item has been consistently increasing over the past {} weeks. "
                        "Started at ~{:.2f} {}/week, now at ~{:.2f} {}/week ({}{:.0f}% overall)."
                    ).format(
                        len(series),
                        first_avg,
                        unit_name,
                        last_avg,
                        unit_name,
                        "+" if total_increase > 0 else "",
                        total_increase,
                    ),
                    suggestion=_TREND_REVIEW,
                    data=AlertData(
                        current_variance=last_avg,
                        previous_variance=first_avg,
                        percentage_change=round(total_increase),
                        unit_name=unit_name,
                    ),
                    detected_at=latest_count.approved_at,
                )
            )
    return alerts


def _safe_detect(detector, counts, thresholds):
    # Detectors are independent; a failure drops only its own alerts.
    try:
        return detector(counts, thresholds)
    except (ArithmeticError, ValueError, TypeError):
        logger.exception("Alert detector %s failed", detector.__name__)
        return []


def sort_alerts(alerts):
    return sorted(
        alerts,
        key=lambda alert: (
            _SEVERITY_RANK[alert.severity],
            -alert.detected_at.timestamp(),
            alert.id,
        ),
    )


def evaluate_alerts(counts, thresholds: AlertThresholds = AlertThresholds()):
    alerts = []
    for detector in (detect_repeated_high_variance, detect_variance_spikes, detect_worsening_trends):
        alerts.extend(_safe_detect(detector, counts, thresholds))
    return sort_alerts(alerts)


def get_inventory_alerts(
    restaurant_id: int,
    branch_id: Optional[int] = None,
    *,
    today: Optional[date] = None,
    thresholds: Optional[AlertThresholds] = None,
    session_factory=SessionLocal,
) -> list[InventoryAlert]:
    if not restaurant_id:
        return []
    today = today or date.today()
    thresholds = thresholds or AlertThresholds.from_settings()
    since = start_of_day(today - timedelta(days=thresholds.lookback_days))
    until = start_of_day(today + timedelta(days=1))

    def _compute():
        with session_factory() as db:
            counts = fetch_approved_counts(db, restaurant_id, since, branch_id=branch_id, until=until)
        if not counts:
            return []
        return evaluate_alerts(counts, thresholds)

    cache_key = ("inventory-alerts", session_factory, restaurant_id, branch_id, today, thresholds)
    try:
        return alerts_cache.get_or_compute(cache_key, _compute)
    except SQLAlchemyError:
        logger.exception("Inventory alerts failed for restaurant %s", restaurant_id)
        return []


__all__ = [
    "AlertThresholds",
    "alerts_cache",
    "detect_repeated_high_variance",
    "detect_variance_spikes",
    "detect_worsening_trends",
    "evaluate_alerts",
    "get_inventory_alerts",
    "sort_alerts",
]
