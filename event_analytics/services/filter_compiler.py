from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import and_, not_, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from event_analytics.core.exceptions import InvalidFilterError
from event_analytics.db.models.event import BOOLEAN_COLUMNS, EVENT_COLUMNS, Event, EventExtra
from event_analytics.schemas.events import as_utc
from event_analytics.schemas.filters import (
    And,
    Comparison,
    Extra,
    Filter,
    In,
    IsNull,
    Not,
    Or,
    parse_filter,
)

_OPERATORS = {
    "eq": lambda col, v: col == v,
    "ne": lambda col, v: col != v,
    "gt": lambda col, v: col > v,
    "gte": lambda col, v: col >= v,
    "lt": lambda col, v: col < v,
    "lte": lambda col, v: col <= v,
}


def _column(name: str):
    try:
        return EVENT_COLUMNS[name]
    except KeyError:
        raise InvalidFilterError(f"Unknown event column: {name!r}") from None


def _coerce_date(value: Any) -> datetime:
    # stored timestamps are UTC
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value))
        except ValueError:
            raise InvalidFilterError(f"Invalid date value: {value!r}") from None
    raise InvalidFilterError(f"Invalid date value: {value!r}")


def _coerce(name: str, value: Any) -> Any:
    if value is None:
        return value
    if name == "date":
        return _coerce_date(value)
    if name in BOOLEAN_COLUMNS:
        if not isinstance(value, bool):
            raise InvalidFilterError(f"Column {name!r} only compares against true/false, got {value!r}")
        return value
    if not isinstance(value, str):
        raise InvalidFilterError(f"Column {name!r} only compares against strings, got {value!r}")
    return value


def compile_filter(node: Optional[Filter]) -> ColumnElement:
    """Translate a filter tree into a WHERE clause over ``events``."""
    node = parse_filter(node)
    if node is None:
        return true()

    if isinstance(node, Comparison):
        col = _column(node.column)
        value = _coerce(node.column, node.value)
        if value is None:
            if node.op == "eq":
                return col.is_(None)
            if node.op == "ne":
                return col.is_not(None)
            raise InvalidFilterError(f"Operator {node.op!r} cannot compare against null")
        return _OPERATORS[node.op](col, value)

    if isinstance(node, In):
        col = _column(node.column)
        return col.in_([_coerce(node.column, v) for v in node.values])

    if isinstance(node, IsNull):
        col = _column(node.column)
        return col.is_(None) if node.value else col.is_not(None)

    if isinstance(node, Extra):
        sub = select(EventExtra.event_id).where(
            EventExtra.event_id == Event.id,
            EventExtra.key == node.key,
        )
        if node.value is not None:
            sub = sub.where(EventExtra.value == node.value)
        return sub.exists()

    if isinstance(node, And):
        return and_(*(compile_filter(c) for c in node.clauses))

    if isinstance(node, Or):
        return or_(*(compile_filter(c) for c in node.clauses))

    if isinstance(node, Not):
        return not_(compile_filter(node.clause))

    raise InvalidFilterError(f"Unsupported filter node: {type(node).__name__}")
