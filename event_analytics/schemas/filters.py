"""
Structured filters over event columns.

A filter is a small tree of pydantic models tagged by ``op``. Callers either
build nodes directly (or with the helpers at the bottom of this module) or
pass plain mappings through ``parse_filter``:

    {"op": "and", "clauses": [
        {"op": "eq", "column": "event", "value": "signup"},
        {"op": "gte", "column": "date", "value": "2024-01-01"},
        {"op": "extra", "key": "plan", "value": "pro"},
    ]}

Filters never carry query text; ``services.filter_compiler`` turns them into
SQLAlchemy expressions against a fixed set of columns.
"""
from datetime import date, datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from event_analytics.core.exceptions import InvalidFilterError

Scalar = Union[bool, int, float, datetime, date, str, None]


class _Node(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class Comparison(_Node):
    op: Literal["eq", "ne", "gt", "gte", "lt", "lte"]
    column: str
    value: Scalar = None


class In(_Node):
    op: Literal["in"] = "in"
    column: str
    values: List[Scalar] = Field(..., min_length=1)


class IsNull(_Node):
    op: Literal["is_null"] = "is_null"
    column: str
    value: bool = True


class Extra(_Node):
    """Matches events carrying attribute ``key`` (with ``value``, if given)."""
    op: Literal["extra"] = "extra"
    key: str
    value: Optional[str] = None


class And(_Node):
    op: Literal["and"] = "and"
    clauses: List["Filter"] = Field(..., min_length=1)


class Or(_Node):
    op: Literal["or"] = "or"
    clauses: List["Filter"] = Field(..., min_length=1)


class Not(_Node):
    op: Literal["not"] = "not"
    clause: "Filter"


Filter = Annotated[
    Union[Comparison, In, IsNull, Extra, And, Or, Not],
    Field(discriminator="op"),
]

And.model_rebuild()
Or.model_rebuild()
Not.model_rebuild()

_filter_adapter = TypeAdapter(Filter)

FILTER_TYPES = (Comparison, In, IsNull, Extra, And, Or, Not)


def parse_filter(obj: Any) -> Optional[Filter]:
    """Accept a filter node, a mapping describing one, or None."""
    if obj is None or isinstance(obj, FILTER_TYPES):
        return obj
    if isinstance(obj, str):
        raise InvalidFilterError("Raw query strings are not accepted as filters")
    try:
        return _filter_adapter.validate_python(obj)
    except ValidationError as e:
        raise InvalidFilterError(f"Malformed filter: {e}") from e


def conjoin(*filters: Any) -> Optional[Filter]:
    """AND together the given filters, skipping empty ones."""
    clauses = [parse_filter(f) for f in filters if f is not None]
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return And(clauses=clauses)


# Builders ---------------------------------------

def eq(column: str, value: Scalar) -> Comparison:
    return Comparison(op="eq", column=column, value=value)


def ne(column: str, value: Scalar) -> Comparison:
    return Comparison(op="ne", column=column, value=value)


def gt(column: str, value: Scalar) -> Comparison:
    return Comparison(op="gt", column=column, value=value)


def gte(column: str, value: Scalar) -> Comparison:
    return Comparison(op="gte", column=column, value=value)


def lt(column: str, value: Scalar) -> Comparison:
    return Comparison(op="lt", column=column, value=value)


def lte(column: str, value: Scalar) -> Comparison:
    return Comparison(op="lte", column=column, value=value)


def in_(column: str, values: List[Scalar]) -> In:
    return In(column=column, values=values)


def is_null(column: str, value: bool = True) -> IsNull:
    return IsNull(column=column, value=value)


def has_extra(key: str, value: Optional[str] = None) -> Extra:
    return Extra(key=key, value=value)


def and_(*clauses: Filter) -> And:
    return And(clauses=list(clauses))


def or_(*clauses: Filter) -> Or:
    return Or(clauses=list(clauses))


def not_(clause: Filter) -> Not:
    return Not(clause=clause)


VISIT = eq("event", "visit")
