"""
Table query description shared by every platform adapter.

Callers describe filters as a mapping of column -> constraint:

    {"status": "active"}                          equality
    {"status": ["active", "on-leave"]}            membership
    {"license_expiry": lt(date(2026, 11, 18))}    single comparison
    {"next_service_date": Range(gte=a, lt=b)}     range
    {"user_id": None}                             IS NULL

``normalize_filters`` flattens such a mapping into a sorted tuple of hashable
``Condition`` objects, which is what adapters translate and what cache keys embed.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


class Op(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    ILIKE = "ilike"
    IS = "is"


@dataclass(frozen=True)
class Constraint:
    op: Op
    value: Any


@dataclass(frozen=True)
class Range:
    gt: Any = None
    gte: Any = None
    lt: Any = None
    lte: Any = None

    def constraints(self) -> List[Constraint]:
        pairs = ((Op.GT, self.gt), (Op.GTE, self.gte), (Op.LT, self.lt), (Op.LTE, self.lte))
        return [Constraint(op, value) for op, value in pairs if value is not None]


@dataclass(frozen=True)
class Condition:
    column: str
    op: Op
    value: Any


def eq(value: Any) -> Constraint:
    return Constraint(Op.EQ, value)


def neq(value: Any) -> Constraint:
    return Constraint(Op.NEQ, value)


def gt(value: Any) -> Constraint:
    return Constraint(Op.GT, value)


def gte(value: Any) -> Constraint:
    return Constraint(Op.GTE, value)


def lt(value: Any) -> Constraint:
    return Constraint(Op.LT, value)


def lte(value: Any) -> Constraint:
    return Constraint(Op.LTE, value)


def in_(values: Iterable[Any]) -> Constraint:
    return Constraint(Op.IN, tuple(values))


def ilike(pattern: str) -> Constraint:
    return Constraint(Op.ILIKE, pattern)


LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """``term`` with LIKE wildcards escaped, so a search matches it literally."""
    return term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", LIKE_ESCAPE + "%").replace("_", LIKE_ESCAPE + "_")


def _freeze(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(_freeze(v) for v in value)
    return value


def normalize_filters(filters: Optional[Mapping[str, Any]]) -> Tuple[Condition, ...]:
    """Flatten a filter mapping into sorted, hashable conditions."""
    conditions: List[Condition] = []
    for column, raw in (filters or {}).items():
        if isinstance(raw, Range):
            constraints = raw.constraints()
        elif isinstance(raw, Constraint):
            constraints = [raw]
        elif raw is None:
            constraints = [Constraint(Op.IS, None)]
        elif isinstance(raw, (list, tuple, set, frozenset)):
            constraints = [Constraint(Op.IN, raw)]
        else:
            constraints = [Constraint(Op.EQ, raw)]

        for constraint in constraints:
            conditions.append(Condition(column, Op(constraint.op), _freeze(constraint.value)))

    return tuple(sorted(conditions, key=lambda c: (c.column, c.op.value, repr(c.value))))


@dataclass
class TableQuery:
    """A read (or the row-selection part of an update/delete) against one table."""
    table: str
    conditions: Tuple[Condition, ...] = ()
    order_by: Optional[str] = None
    ascending: bool = True
    search_columns: Tuple[str, ...] = ()
    search_term: Optional[str] = None
    offset: Optional[int] = None
    limit: Optional[int] = None
    count: bool = False
    single: bool = False
    columns: str = "*"

    def where(self, filters: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "TableQuery":
        merged: Dict[str, Any] = dict(filters or {})
        merged.update(kwargs)
        return replace(self, conditions=tuple(self.conditions) + normalize_filters(merged))

    def order(self, column: str, *, desc: bool = False) -> "TableQuery":
        return replace(self, order_by=column, ascending=not desc)

    def search(self, columns: Iterable[str], term: Optional[str]) -> "TableQuery":
        term = (term or "").strip()
        if not term:
            return self
        return replace(self, search_columns=tuple(columns), search_term=term)

    def range(self, offset: int, limit: int, *, count: bool = True) -> "TableQuery":
        return replace(self, offset=offset, limit=limit, count=count)

    def one(self) -> "TableQuery":
        return replace(self, single=True)

    def column_values(self, column: str) -> List[Any]:
        """Equality values this query pins ``column`` to."""
        return [c.value for c in self.conditions if c.column == column and c.op is Op.EQ]
