"""Denormalized counter maintenance."""

from __future__ import annotations

from sqlalchemy import case, update
from sqlalchemy.orm import InstrumentedAttribute, Session


def bump(db: Session, column: InstrumentedAttribute, row_id: int, delta: int) -> None:
    """Add ``delta`` to ``column`` of one row, never going below zero.

    The arithmetic happens in the UPDATE statement so the value written is
    derived from the row as the transaction sees it.
    """

    if delta == 0:
        return
    model = column.class_
    if delta > 0:
        value = column + delta
    else:
        value = case((column + delta > 0, column + delta), else_=0)
    db.execute(
        update(model)
        .where(model.id == row_id)
        .values({column.key: value})
        .execution_options(synchronize_session="fetch")
    )
