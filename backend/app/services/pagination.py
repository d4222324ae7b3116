"""Cursor-based pagination helpers.

Every list is a keyset scan over ``(timestamp, id)``. The continuation cursor
is an opaque token holding the sort key of the last row handed out, so rows
inserted after a page was served never shift the boundary of later pages.
"""

from __future__ import annotations

import base64
import heapq
from dataclasses import dataclass, field
from datetime import datetime
from itertools import islice
from typing import Any, Callable, Generic, Iterable, Sequence, TypeVar

from sqlalchemy import Select, and_, or_
from sqlalchemy.orm import InstrumentedAttribute, Session

from app.core.errors import InvalidArgument

T = TypeVar("T")
U = TypeVar("U")

_CURSOR_VERSION = "v1"


@dataclass(slots=True)
class Page(Generic[T]):
    """One page of a paginated list."""

    page: list[T] = field(default_factory=list)
    is_done: bool = True
    continue_cursor: str = ""

    @classmethod
    def empty(cls) -> "Page[T]":
        return cls(page=[], is_done=True, continue_cursor="")

    def map(self, func: Callable[[T], U]) -> "Page[U]":
        return Page(
            page=[func(item) for item in self.page],
            is_done=self.is_done,
            continue_cursor=self.continue_cursor,
        )


def encode_cursor(timestamp: datetime, row_id: int) -> str:
    payload = f"{_CURSOR_VERSION}|{timestamp.isoformat()}|{row_id}"
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[datetime, int]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        version, timestamp, row_id = raw.split("|", 2)
        if version != _CURSOR_VERSION:
            raise ValueError("Unsupported cursor version")
        return datetime.fromisoformat(timestamp), int(row_id)
    except (ValueError, UnicodeError) as exc:
        raise InvalidArgument("Invalid cursor") from exc


def _after_cursor(
    stmt: Select,
    time_column: InstrumentedAttribute,
    id_column: InstrumentedAttribute,
    cursor: str | None,
    descending: bool,
) -> Select:
    if cursor:
        pivot_time, pivot_id = decode_cursor(cursor)
        if descending:
            stmt = stmt.where(
                or_(
                    time_column < pivot_time,
                    and_(time_column == pivot_time, id_column < pivot_id),
                )
            )
        else:
            stmt = stmt.where(
                or_(
                    time_column > pivot_time,
                    and_(time_column == pivot_time, id_column > pivot_id),
                )
            )
    if descending:
        return stmt.order_by(time_column.desc(), id_column.desc())
    return stmt.order_by(time_column.asc(), id_column.asc())


def _sort_key(time_column: InstrumentedAttribute, id_column: InstrumentedAttribute):
    time_attr = time_column.key
    id_attr = id_column.key
    return lambda row: (getattr(row, time_attr), getattr(row, id_attr))


def _finish(rows: Sequence[Any], num_items: int, key) -> Page:
    items = list(rows[:num_items])
    is_done = len(rows) <= num_items
    continue_cursor = encode_cursor(*key(items[-1])) if items else ""
    return Page(page=items, is_done=is_done, continue_cursor=continue_cursor)


def paginate(
    db: Session,
    stmt: Select,
    *,
    time_column: InstrumentedAttribute,
    id_column: InstrumentedAttribute,
    cursor: str | None,
    num_items: int,
    descending: bool = True,
) -> Page:
    """Fetch one page of ORM entities selected by ``stmt``."""

    num_items = max(num_items, 1)
    scoped = _after_cursor(stmt, time_column, id_column, cursor, descending)
    rows = db.scalars(scoped.limit(num_items + 1)).all()
    return _finish(rows, num_items, _sort_key(time_column, id_column))


def merge_sorted(streams: Iterable[Iterable[T]], *, key, limit: int | None = None, reverse: bool = False) -> list[T]:
    """K-way merge of individually sorted streams."""

    merged = heapq.merge(*streams, key=key, reverse=reverse)
    return list(islice(merged, limit)) if limit is not None else list(merged)


def merge_paginate(
    db: Session,
    statements: Sequence[Select],
    *,
    time_column: InstrumentedAttribute,
    id_column: InstrumentedAttribute,
    cursor: str | None,
    num_items: int,
    descending: bool = False,
) -> Page:
    """Paginate a relation physically split across several indexed scans.

    Each statement is scanned independently from the same cursor and the
    results are merged into a single stream ordered by ``(time, id)``. The
    statements must select rows of one table so ids never collide.
    """

    num_items = max(num_items, 1)
    key = _sort_key(time_column, id_column)
    streams = [
        db.scalars(
            _after_cursor(stmt, time_column, id_column, cursor, descending).limit(num_items + 1)
        ).all()
        for stmt in statements
    ]
    merged = merge_sorted(streams, key=key, limit=num_items + 1, reverse=descending)
    return _finish(merged, num_items, key)
