"""Seminar filter predicate.

The predicate is declared once, as an ordered tuple of field rules, and read by
two interpreters: ``matches`` evaluates it against an in-memory record and
``build_conditions`` compiles it into SQLAlchemy clauses for a store scan.
Every rule kind must therefore have a branch in both interpreters.

Case-insensitive rules never rely on the database's own case folding. Stores
persist ``fold_text(value)`` in a companion column named by the rule's
``folded_field`` and the SQL branch matches the folded filter against it, so
both interpreters compare the same Python-folded strings.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from sqlalchemy import ColumnElement

from seminar_core.models import FilterState

R = TypeVar("R")


class RuleKind(str, Enum):
    EXACT = "exact"
    CONTAINS_CASEFOLD = "contains_casefold"
    AT_LEAST = "at_least"
    AT_MOST = "at_most"


@dataclass(frozen=True)
class FieldRule:
    filter_field: str
    record_field: str
    kind: RuleKind
    folded_field: str | None = None


# Dates are ISO 8601 strings of equal precision, so string order is date order.
# start_date/end_date bounds are checked against the opposite record edge:
# a seminar matches when its interval overlaps the filter window.
SEMINAR_FILTER_RULES: tuple[FieldRule, ...] = (
    FieldRule("country", "country_code", RuleKind.EXACT),
    FieldRule("instructor", "instructor", RuleKind.CONTAINS_CASEFOLD, folded_field="instructor_folded"),
    FieldRule("organization", "organization", RuleKind.EXACT),
    FieldRule("level", "level", RuleKind.EXACT),
    FieldRule("start_date", "end_date", RuleKind.AT_LEAST),
    FieldRule("end_date", "start_date", RuleKind.AT_MOST),
)


def fold_text(value: str) -> str:
    return value.casefold()


def active_rules(
    filters: FilterState,
    rules: tuple[FieldRule, ...] = SEMINAR_FILTER_RULES,
) -> list[tuple[FieldRule, str]]:
    active: list[tuple[FieldRule, str]] = []
    for rule in rules:
        value = getattr(filters, rule.filter_field)
        if value:
            active.append((rule, value))
    return active


def _rule_accepts(kind: RuleKind, record_value: Any, filter_value: str) -> bool:
    # None behaves like SQL NULL: no comparison is true.
    if record_value is None:
        return False
    if kind is RuleKind.EXACT:
        return record_value == filter_value
    if kind is RuleKind.CONTAINS_CASEFOLD:
        return fold_text(filter_value) in fold_text(record_value)
    if kind is RuleKind.AT_LEAST:
        return record_value >= filter_value
    if kind is RuleKind.AT_MOST:
        return record_value <= filter_value
    raise ValueError(f"unsupported rule kind: {kind}")


def matches(
    filters: FilterState,
    record: Any,
    rules: tuple[FieldRule, ...] = SEMINAR_FILTER_RULES,
) -> bool:
    return all(
        _rule_accepts(rule.kind, getattr(record, rule.record_field), value)
        for rule, value in active_rules(filters, rules)
    )


def apply_filters(
    records: Iterable[R],
    filters: FilterState,
    rules: tuple[FieldRule, ...] = SEMINAR_FILTER_RULES,
) -> list[R]:
    return [record for record in records if matches(filters, record, rules)]


def _rule_condition(kind: RuleKind, column: Any, filter_value: str) -> ColumnElement[bool]:
    if kind is RuleKind.EXACT:
        return column == filter_value
    if kind is RuleKind.CONTAINS_CASEFOLD:
        # column holds fold_text(value); autoescape keeps % and _ literal.
        return column.contains(fold_text(filter_value), autoescape=True)
    if kind is RuleKind.AT_LEAST:
        return column >= filter_value
    if kind is RuleKind.AT_MOST:
        return column <= filter_value
    raise ValueError(f"unsupported rule kind: {kind}")


def build_conditions(
    filters: FilterState,
    model: Any,
    rules: tuple[FieldRule, ...] = SEMINAR_FILTER_RULES,
) -> list[ColumnElement[bool]]:
    """Translate the active rules into clauses over ``model``'s mapped attributes.

    The caller ANDs them, e.g. ``select(model).where(*build_conditions(...))``.
    """
    return [
        _rule_condition(rule.kind, _rule_column(rule, model), value)
        for rule, value in active_rules(filters, rules)
    ]


def _rule_column(rule: FieldRule, model: Any) -> Any:
    if rule.kind is RuleKind.CONTAINS_CASEFOLD:
        if rule.folded_field is None:
            raise ValueError(f"rule for {rule.filter_field} needs a folded_field")
        return getattr(model, rule.folded_field)
    return getattr(model, rule.record_field)


def folded_values(record: Any, rules: tuple[FieldRule, ...] = SEMINAR_FILTER_RULES) -> dict[str, str | None]:
    """Companion column values a store must persist next to ``record``."""
    values: dict[str, str | None] = {}
    for rule in rules:
        if rule.folded_field is None:
            continue
        raw = getattr(record, rule.record_field)
        values[rule.folded_field] = fold_text(raw) if raw is not None else None
    return values
