from __future__ import annotations

from sqlalchemy import and_, insert, select, update


def _dialect_insert(db):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert

        return pg_insert
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert

        return sqlite_insert
    return None


def upsert_row(db, model, values: dict, conflict_columns, update_columns) -> None:
    """INSERT ... ON CONFLICT (conflict_columns) DO UPDATE; last write wins.

    Dialects without native upsert fall back to update-then-insert inside the
    caller's transaction.
    """
    dialect_insert = _dialect_insert(db)
    if dialect_insert is not None:
        stmt = dialect_insert(model).values(**values)
        if update_columns:
            stmt = stmt.on_conflict_do_update(
                index_elements=list(conflict_columns),
                set_={column: getattr(stmt.excluded, column) for column in update_columns},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
        db.execute(stmt)
        return

    key_clause = and_(*(getattr(model, column) == values[column] for column in conflict_columns))
    exists = db.execute(select(model.id).where(key_clause).limit(1)).first()
    if exists is None:
        db.execute(insert(model).values(**values))
    elif update_columns:
        db.execute(update(model).where(key_clause).values(**{c: values[c] for c in update_columns}))


def select_by_key(db, model, values: dict, conflict_columns, *, for_update: bool = False):
    stmt = select(model).where(*(getattr(model, column) == values[column] for column in conflict_columns))
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalar_one()


__all__ = ["select_by_key", "upsert_row"]
