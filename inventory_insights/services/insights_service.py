"""Rule-based operational insights.

Today's activity is compared against the restaurant's recent baseline. Each
insight type keeps a persisted streak (``insight_tracking``) so an insight seen
on several consecutive days escalates from ``first`` to ``repeated`` and a
same-day re-evaluation does not count twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.config import get_settings
from inventory_insights.core.constants import (
    CONFIDENCE_MAX,
    CONFIDENCE_MIN,
    MAX_OPERATIONAL_NOTES,
    InsightSeverity,
    InsightType,
)
from inventory_insights.core.dates import to_local_naive
from inventory_insights.database.session import SessionLocal
from inventory_insights.database.upsert import select_by_key, upsert_row
from inventory_insights.models.insight_tracking import InsightTracking
from inventory_insights.schemas.insights import (
    BaselineData,
    InsightsResult,
    OperationalInsight,
    TodayActivity,
)
from inventory_insights.services.baseline_service import calculate_baseline, get_today_activity

logger = logging.getLogger(__name__)
settings = get_settings()

REPEATED_AFTER_DAYS = 3
NO_SALES_FROM_HOUR = 12
LONG_SHIFT_MIN_HOURS = 10
LONG_SHIFT_FACTOR = 1.5

INSIGHT_DEDUCTIONS = {
    InsightType.REPEATED_CANCELLATION_AFTER_PAYMENT: {InsightSeverity.FIRST: 10, InsightSeverity.REPEATED: 15},
    InsightType.EXCESSIVE_DISCOUNTS: {InsightSeverity.FIRST: 5, InsightSeverity.REPEATED: 10},
    InsightType.REPEATED_INVENTORY_ADJUSTMENTS: {InsightSeverity.FIRST: 5, InsightSeverity.REPEATED: 10},
    InsightType.LONG_OPEN_SHIFTS: {InsightSeverity.FIRST: 5, InsightSeverity.REPEATED: 10},
    InsightType.NO_SALES_DURING_HOURS: {InsightSeverity.FIRST: 10, InsightSeverity.REPEATED: 15},
}

INSIGHT_ID_PREFIXES = {
    InsightType.REPEATED_CANCELLATION_AFTER_PAYMENT: "cancellation",
    InsightType.EXCESSIVE_DISCOUNTS: "discounts",
    InsightType.REPEATED_INVENTORY_ADJUSTMENTS: "inventory",
    InsightType.LONG_OPEN_SHIFTS: "shift",
    InsightType.NO_SALES_DURING_HOURS: "nosales",
}

NOTE_TEMPLATES = {
    InsightType.REPEATED_CANCELLATION_AFTER_PAYMENT: {
        InsightSeverity.FIRST: "Order cancellations after payment are higher than recent activity.",
        InsightSeverity.REPEATED: "Order cancellations after payment have continued over recent days.",
    },
    InsightType.EXCESSIVE_DISCOUNTS: {
        InsightSeverity.FIRST: "Discount usage is higher compared to recent activity.",
        InsightSeverity.REPEATED: "Elevated discount usage has continued over recent days.",
    },
    InsightType.REPEATED_INVENTORY_ADJUSTMENTS: {
        InsightSeverity.FIRST: "Multiple inventory adjustments on the same items today.",
        InsightSeverity.REPEATED: "Repeated inventory adjustments have continued over recent days.",
    },
    InsightType.LONG_OPEN_SHIFTS: {
        InsightSeverity.FIRST: "A shift has been open longer than typical duration.",
        InsightSeverity.REPEATED: "Extended shift durations have continued over recent days.",
    },
    InsightType.NO_SALES_DURING_HOURS: {
        InsightSeverity.FIRST: "No sales recorded during operating hours today.",
        InsightSeverity.REPEATED: "Low sales activity has continued over recent days.",
    },
}


@dataclass(frozen=True)
class InsightCandidate:
    type: InsightType
    current_value: float
    baseline_value: float
    deviation_percent: float


@dataclass(frozen=True)
class TrackingOutcome:
    consecutive_days: int
    already_shown: bool


def _deviation(current: float, baseline: float, *, when_no_baseline: float = 100.0) -> float:
    if baseline > 0:
        return (current - baseline) / baseline * 100
    return when_no_baseline


def detect_insight_candidates(
    baseline: BaselineData,
    activity: TodayActivity,
    now: datetime,
    *,
    deviation_threshold: float = 50.0,
) -> list[InsightCandidate]:
    candidates = []

    refunds = activity.cancellations_after_payment
    if refunds > 1:
        deviation = _deviation(refunds, baseline.avg_cancellations_after_payment)
        if deviation >= deviation_threshold:
            candidates.append(
                InsightCandidate(
                    InsightType.REPEATED_CANCELLATION_AFTER_PAYMENT,
                    refunds,
                    baseline.avg_cancellations_after_payment,
                    deviation,
                )
            )

    if activity.total_orders > 0 and baseline.avg_discount_rate > 0:
        today_rate = (
            activity.total_discounts / activity.total_revenue * 100 if activity.total_revenue > 0 else 0.0
        )
        deviation = _deviation(today_rate, baseline.avg_discount_rate)
        if deviation >= deviation_threshold and activity.discounted_orders > 2:
            candidates.append(
                InsightCandidate(
                    InsightType.EXCESSIVE_DISCOUNTS,
                    today_rate,
                    baseline.avg_discount_rate,
                    deviation,
                )
            )

    adjusted = activity.repeated_inventory_adjustments
    if adjusted > 2:
        deviation = _deviation(adjusted, baseline.avg_inventory_adjustments)
        if deviation >= deviation_threshold:
            candidates.append(
                InsightCandidate(
                    InsightType.REPEATED_INVENTORY_ADJUSTMENTS,
                    adjusted,
                    baseline.avg_inventory_adjustments,
                    deviation,
                )
            )

    hours = activity.max_shift_hours
    usual_hours = baseline.avg_shift_duration_hours
    if hours > usual_hours * LONG_SHIFT_FACTOR and hours > LONG_SHIFT_MIN_HOURS:
        candidates.append(
            InsightCandidate(
                InsightType.LONG_OPEN_SHIFTS,
                hours,
                usual_hours,
                _deviation(hours, usual_hours),
            )
        )

    if (
        now.hour >= NO_SALES_FROM_HOUR
        and activity.total_orders == 0
        and activity.has_open_shift
        and baseline.avg_orders_per_day > 0
    ):
        candidates.append(
            InsightCandidate(
                InsightType.NO_SALES_DURING_HOURS,
                0.0,
                baseline.avg_orders_per_day,
                100.0,
            )
        )

    return candidates


def severity_for(consecutive_days: int) -> InsightSeverity:
    if consecutive_days >= REPEATED_AFTER_DAYS:
        return InsightSeverity.REPEATED
    return InsightSeverity.FIRST


def advance_streak(row: InsightTracking, today: date) -> TrackingOutcome:
    """Record a detection on ``today``."""
    if row.last_shown_date == today:
        return TrackingOutcome(consecutive_days=row.consecutive_days or 1, already_shown=True)
    if row.last_shown_date == today - timedelta(days=1):
        row.consecutive_days = (row.consecutive_days or 0) + 1
    else:
        row.consecutive_days = 1
    row.last_shown_date = today
    return TrackingOutcome(consecutive_days=row.consecutive_days, already_shown=False)


def reset_streak(row: InsightTracking, today: date) -> None:
    """Behaviour back to normal; keep today's streak if it was already detected today."""
    if row.last_shown_date != today:
        row.consecutive_days = 0


def record_insight_tracking(
    restaurant_id: int,
    detected_types,
    today: date,
    *,
    session_factory=SessionLocal,
) -> dict[InsightType, TrackingOutcome]:
    detected_types = set(detected_types)
    outcomes: dict[InsightType, TrackingOutcome] = {}

    db = session_factory()
    try:
        for insight_type in InsightType:
            key = {"restaurant_id": restaurant_id, "insight_type": insight_type.value}
            if insight_type in detected_types:
                upsert_row(
                    db,
                    InsightTracking,
                    {**key, "consecutive_days": 0, "updated_at": datetime.now(timezone.utc)},
                    ("restaurant_id", "insight_type"),
                    (),
                )
                row = select_by_key(db, InsightTracking, key, ("restaurant_id", "insight_type"), for_update=True)
                outcomes[insight_type] = advance_streak(row, today)
                continue

            row = db.execute(
                select(InsightTracking)
                .where(
                    InsightTracking.restaurant_id == restaurant_id,
                    InsightTracking.insight_type == insight_type.value,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if row is not None:
                reset_streak(row, today)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()
    return outcomes


def compute_confidence_score(insights) -> int:
    score = CONFIDENCE_MAX
    for insight in insights:
        score -= INSIGHT_DEDUCTIONS[insight.type][insight.severity]
    return max(CONFIDENCE_MIN, min(CONFIDENCE_MAX, score))


def generate_operational_notes(insights) -> list[str]:
    return [NOTE_TEMPLATES[insight.type][insight.severity] for insight in insights[:MAX_OPERATIONAL_NOTES]]


def get_operational_insights(
    restaurant_id: int,
    *,
    now: Optional[datetime] = None,
    session_factory=SessionLocal,
) -> InsightsResult:
    if not restaurant_id:
        return InsightsResult(is_new_restaurant=True)
    now = to_local_naive(now or datetime.now())
    today = now.date()

    try:
        baseline = calculate_baseline(restaurant_id, today, session_factory=session_factory)
        if baseline.active_days_count < settings.MIN_ACTIVE_DAYS_FOR_INSIGHTS:
            return InsightsResult(baseline=baseline, is_new_restaurant=True)

        activity = get_today_activity(restaurant_id, now, session_factory=session_factory)
        candidates = detect_insight_candidates(
            baseline,
            activity,
            now,
            deviation_threshold=settings.INSIGHT_DEVIATION_PERCENT,
        )
        outcomes = record_insight_tracking(
            restaurant_id,
            [candidate.type for candidate in candidates],
            today,
            session_factory=session_factory,
        )
    except SQLAlchemyError:
        logger.exception("Operational insights failed for restaurant %s", restaurant_id)
        return InsightsResult()

    insights = []
    for candidate in candidates:
        outcome = outcomes[candidate.type]
        insights.append(
            OperationalInsight(
                id="{}_{}".format(INSIGHT_ID_PREFIXES[candidate.type], today.strftime("%Y%m%d")),
                type=candidate.type,
                severity=severity_for(outcome.consecutive_days),
                detected_at=now,
                consecutive_days=outcome.consecutive_days,
                current_value=candidate.current_value,
                baseline_value=candidate.baseline_value,
                deviation_percent=candidate.deviation_percent,
                already_shown=outcome.already_shown,
            )
        )

    if insights:
        logger.info(
            "Restaurant %s: %s operational insight(s): %s",
            restaurant_id,
            len(insights),
            ", ".join(insight.type.value for insight in insights),
        )
    return InsightsResult(
        insights=insights,
        baseline=baseline,
        is_new_restaurant=False,
        confidence_score=compute_confidence_score(insights),
        operational_notes=generate_operational_notes(insights),
    )


__all__ = [
    "INSIGHT_DEDUCTIONS",
    "InsightCandidate",
    "advance_streak",
    "compute_confidence_score",
    "detect_insight_candidates",
    "generate_operational_notes",
    "get_operational_insights",
    "record_insight_tracking",
    "reset_streak",
    "severity_for",
]
