"""
Query-string driven read plans.

Turns the query parameters of a list request into an immutable QueryPlan
(filter conditions, sort keys, projection, page window). The plan is only a
description; FirestoreService.run_query executes it.

    ?rating[gte]=5&careers=Business&sort=-rating,name&fields=name,rating&page=2&limit=10
"""
import re
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

RESERVED_KEYS = frozenset({"page", "sort", "limit", "fields"})
DEFAULT_SORT = "-created_at"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100

_OPERATOR_KEY = re.compile(r"^(?P<field>[^\[\]]+)\[(?P<op>eq|gt|gte|lt|lte|in)\]$")
_INT = re.compile(r"^-?(0|[1-9]\d*)$")
_FLOAT = re.compile(r"^-?(\d+\.\d*|\.\d+)$")


class Operator(str, Enum):
    EQ = "eq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"


class Direction(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


class FilterCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    op: Operator = Operator.EQ
    value: Any


class SortKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    direction: Direction = Direction.ASCENDING


class QueryPlan(BaseModel):
    """Structured description of a read, independent of execution."""
    model_config = ConfigDict(frozen=True)

    filters: Tuple[FilterCondition, ...] = ()
    sort: Tuple[SortKey, ...] = (SortKey(field="created_at", direction=Direction.DESCENDING),)
    projection: Optional[Tuple[str, ...]] = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def coerce_value(raw: Any) -> Any:
    """Best-effort typing of a query-string value."""
    if not isinstance(raw, str):
        return raw
    if raw in ("true", "false"):
        return raw == "true"
    if _INT.match(raw):
        return int(raw)
    if _FLOAT.match(raw):
        return float(raw)
    return raw


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]


def parse_filters(raw: Mapping[str, Any]) -> Tuple[FilterCondition, ...]:
    """Every non-reserved parameter becomes a condition.

    Field names are not checked against any schema: an unknown field just
    matches no documents.
    """
    conditions = []
    for key, value in raw.items():
        if key in RESERVED_KEYS:
            continue
        match = _OPERATOR_KEY.match(key)
        if match is None:
            conditions.append(FilterCondition(field=key, value=coerce_value(value)))
            continue
        op = Operator(match.group("op"))
        if op == Operator.IN:
            value = [coerce_value(item) for item in _split(value)]
        else:
            value = coerce_value(value)
        conditions.append(FilterCondition(field=match.group("field"), op=op, value=value))
    return tuple(conditions)


def parse_sort(value: Optional[str]) -> Tuple[SortKey, ...]:
    keys = []
    for part in _split(value) or [DEFAULT_SORT]:
        if part.startswith("-"):
            keys.append(SortKey(field=part[1:], direction=Direction.DESCENDING))
        else:
            keys.append(SortKey(field=part.lstrip("+")))
    keys = [key for key in keys if key.field]
    return tuple(keys) or parse_sort(DEFAULT_SORT)


def parse_fields(value: Optional[str]) -> Optional[Tuple[str, ...]]:
    fields = tuple(_split(value))
    return fields or None


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(str(value))
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def parse_pagination(page: Any, limit: Any) -> Tuple[int, int]:
    """Invalid or non-positive values fall back to the defaults, never raise."""
    return _positive_int(page, DEFAULT_PAGE), _positive_int(limit, DEFAULT_LIMIT)


class QueryBuilder:
    """Immutable builder over QueryPlan.

    Each step fills its own part of the plan and returns a new builder, so
    the order of the chained calls does not change the result.
    """

    def __init__(
        self,
        params: Mapping[str, Any],
        base_filters: Optional[Mapping[str, Any]] = None,
    ):
        self._params = dict(params.items())
        self._base = tuple(
            FilterCondition(field=field, value=value)
            for field, value in (base_filters or {}).items()
        )
        self._plan = QueryPlan(filters=self._base)

    def _with(self, **update: Any) -> "QueryBuilder":
        builder = QueryBuilder.__new__(QueryBuilder)
        builder._params = self._params
        builder._base = self._base
        builder._plan = self._plan.model_copy(update=update)
        return builder

    def apply_filter(self) -> "QueryBuilder":
        return self._with(filters=self._base + parse_filters(self._params))

    def apply_sort(self) -> "QueryBuilder":
        return self._with(sort=parse_sort(self._params.get("sort")))

    def apply_fields(self) -> "QueryBuilder":
        return self._with(projection=parse_fields(self._params.get("fields")))

    def apply_pagination(self) -> "QueryBuilder":
        page, limit = parse_pagination(self._params.get("page"), self._params.get("limit"))
        return self._with(page=page, limit=limit)

    @property
    def plan(self) -> QueryPlan:
        return self._plan


def build_query_plan(
    params: Mapping[str, Any],
    base_filters: Optional[Mapping[str, Any]] = None,
) -> QueryPlan:
    """Filter, sort, project and paginate in one go."""
    builder = QueryBuilder(params, base_filters)
    return builder.apply_filter().apply_sort().apply_fields().apply_pagination().plan


def strip_hidden(document: Mapping[str, Any], hidden: Iterable[str]) -> dict:
    """Drop internal fields before a document leaves the API."""
    hidden = set(hidden)
    return {key: value for key, value in document.items() if key not in hidden}
