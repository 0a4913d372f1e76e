"""Closed set of query filters understood by every document store adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class Equals:
    """``field == value``."""

    field: str
    value: Any

    def matches(self, data: Mapping[str, Any]) -> bool:
        return data.get(self.field) == self.value


@dataclass(frozen=True)
class RangeBound:
    """Inclusive range on one field; either bound may be omitted."""

    field: str
    lower: Optional[Any] = None
    upper: Optional[Any] = None

    def __post_init__(self) -> None:
        if self.lower is None and self.upper is None:
            raise ValueError(f"RangeBound on {self.field!r} needs at least one bound")

    def matches(self, data: Mapping[str, Any]) -> bool:
        value = data.get(self.field)
        if value is None:
            return False
        if self.lower is not None and value < self.lower:
            return False
        if self.upper is not None and value > self.upper:
            return False
        return True


@dataclass(frozen=True)
class Membership:
    """``field in values``."""

    field: str
    values: Tuple[Any, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        if not self.values:
            raise ValueError(f"Membership on {self.field!r} needs at least one value")

    def matches(self, data: Mapping[str, Any]) -> bool:
        return data.get(self.field) in self.values


FieldFilter = Union[Equals, RangeBound, Membership]


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    """Collection query: all filters must match, results sorted by ``order_by``."""

    collection: str
    filters: Tuple[FieldFilter, ...] = field(default_factory=tuple)
    order_by: Tuple[OrderBy, ...] = field(default_factory=tuple)

    def matches(self, data: Mapping[str, Any]) -> bool:
        return all(item.matches(data) for item in self.filters)
