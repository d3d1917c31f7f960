"""Parameterized SQL fragments built from sparse, optional criteria.

Each filter renders its own predicate together with the bind parameters it
references. Parameter names carry the filter's position so two filters of the
same kind never collide.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class SearchFilter:
    """Case-insensitive substring match against title and excerpt."""

    term: str

    def render(self, key: str) -> tuple[str, dict[str, Any]]:
        like = f"%{_escape_like(self.term)}%"
        return (
            f"(p.title ILIKE :{key} OR p.excerpt ILIKE :{key})",
            {key: like},
        )


@dataclass(frozen=True)
class CategoryFilter:
    slug: str

    def render(self, key: str) -> tuple[str, dict[str, Any]]:
        return f"c.slug = :{key}", {key: self.slug}


@dataclass(frozen=True)
class TagFilter:
    """Posts carrying the given tag. Uses EXISTS so the aggregated tag list stays complete."""

    slug: str

    def render(self, key: str) -> tuple[str, dict[str, Any]]:
        return (
            "EXISTS (SELECT 1 FROM post_tags fpt JOIN tags ft ON ft.id = fpt.tag_id "
            f"WHERE fpt.post_id = p.id AND ft.slug = :{key})",
            {key: self.slug},
        )


@dataclass(frozen=True)
class StatusFilter:
    status: str
    column: str = "p.status"

    def render(self, key: str) -> tuple[str, dict[str, Any]]:
        return f"{self.column} = :{key}", {key: self.status}


Filter = Union[SearchFilter, CategoryFilter, TagFilter, StatusFilter]


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_where(filters: list[Filter], prefix: str = "f") -> tuple[str, dict[str, Any]]:
    """Fold filters into ``WHERE a AND b ...``. Returns ``("", {})`` when there are none."""
    clauses: list[str] = []
    params: dict[str, Any] = {}
    for index, item in enumerate(filters):
        clause, bound = item.render(f"{prefix}{index}")
        clauses.append(clause)
        params.update(bound)
    if not clauses:
        return "", {}
    return "WHERE " + " AND ".join(clauses), params


@dataclass(frozen=True)
class Assign:
    """``column = :column`` with a bound value."""

    column: str
    value: Any


@dataclass(frozen=True)
class AssignExpr:
    """``column = <expression>``; the expression may only reference bound parameters."""

    column: str
    expression: str
    params: dict[str, Any] | None = None


def build_set_clause(assignments: list[Assign | AssignExpr]) -> tuple[str, dict[str, Any]]:
    parts: list[str] = []
    params: dict[str, Any] = {}
    for item in assignments:
        if isinstance(item, Assign):
            key = f"set_{item.column}"
            parts.append(f"{item.column} = :{key}")
            params[key] = item.value
        else:
            parts.append(f"{item.column} = {item.expression}")
            params.update(item.params or {})
    return ", ".join(parts), params
