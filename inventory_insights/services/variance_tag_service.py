import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.database.session import SessionLocal
from inventory_insights.database.upsert import select_by_key, upsert_row
from inventory_insights.models.variance_tag import VarianceTag
from inventory_insights.schemas.variance import VarianceTagRead, VarianceTagUpsert
from inventory_insights.services.consumption_service import invalidate_variance_cache

logger = logging.getLogger(__name__)

TAG_CONFLICT_COLUMNS = ("branch_id", "inventory_item_id", "period_start", "period_end")
TAG_UPDATE_COLUMNS = (
    "restaurant_id",
    "root_cause",
    "notes",
    "variance_qty",
    "variance_value",
    "tagged_by",
    "updated_at",
)


def upsert_variance_tag(tag, *, session_factory=SessionLocal) -> VarianceTagRead:
    """Create or replace the root-cause tag for one branch/item/period."""
    if not isinstance(tag, VarianceTagUpsert):
        # Raises pydantic.ValidationError (a ValueError) on an unknown root cause.
        tag = VarianceTagUpsert.model_validate(tag)

    now = datetime.now(timezone.utc)
    values = {
        "restaurant_id": tag.restaurant_id,
        "branch_id": tag.branch_id,
        "inventory_item_id": tag.inventory_item_id,
        "period_start": tag.period_start,
        "period_end": tag.period_end,
        "root_cause": tag.root_cause.value,
        "notes": tag.notes or None,
        "variance_qty": tag.variance_qty,
        "variance_value": tag.variance_value,
        "tagged_by": tag.tagged_by,
        "tagged_at": now,
        "updated_at": now,
    }

    db = session_factory()
    try:
        upsert_row(db, VarianceTag, values, TAG_CONFLICT_COLUMNS, TAG_UPDATE_COLUMNS)
        stored = select_by_key(db, VarianceTag, values, TAG_CONFLICT_COLUMNS)
        db.commit()
        result = VarianceTagRead.model_validate(stored)
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()

    invalidate_variance_cache(
        tag.restaurant_id,
        branch_id=tag.branch_id,
        period_start=tag.period_start,
        period_end=tag.period_end,
    )
    logger.info(
        "Variance tag %s saved for branch %s item %s (%s..%s): %s",
        result.id,
        result.branch_id,
        result.inventory_item_id,
        result.period_start,
        result.period_end,
        result.root_cause.value,
    )
    return result


def delete_variance_tag(tag_id: int, *, session_factory=SessionLocal) -> bool:
    db = session_factory()
    try:
        restaurant_id = db.execute(
            select(VarianceTag.restaurant_id).where(VarianceTag.id == tag_id)
        ).scalar_one_or_none()
        if restaurant_id is None:
            return False
        db.execute(delete(VarianceTag).where(VarianceTag.id == tag_id))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()

    invalidate_variance_cache(restaurant_id)
    logger.info("Variance tag %s deleted", tag_id)
    return True


def list_variance_tags(restaurant_id: int, branch_id=None, *, session_factory=SessionLocal):
    with session_factory() as db:
        stmt = select(VarianceTag).where(VarianceTag.restaurant_id == restaurant_id)
        if branch_id is not None:
            stmt = stmt.where(VarianceTag.branch_id == branch_id)
        rows = db.execute(
            stmt.order_by(VarianceTag.period_start.desc(), VarianceTag.inventory_item_id)
        ).scalars()
        return [VarianceTagRead.model_validate(row) for row in rows]


__all__ = ["delete_variance_tag", "list_variance_tags", "upsert_variance_tag"]
