"""Structural validation of the query IR."""

from typing import List, Optional, Set

from pydantic import BaseModel

from .ir_types import Query, FilterGroup, FilterCondition


class IRValidationResult(BaseModel):
    """Result of IR validation."""
    valid: bool
    errors: List[str] = []


def validate_ir(query: Query) -> IRValidationResult:
    """
    Check the IR for structural defects before generating SQL.

    Never raises. Every finding is reported as one error string; the
    generator would silently drop the offending join or filter instead.
    An empty selected_columns list is fine (it renders SELECT *).
    """
    errors = _collect_errors(query)
    return IRValidationResult(valid=not errors, errors=errors)


def _collect_errors(query: Query) -> List[str]:
    errors: List[str] = []

    if not query.tables:
        errors.append("Query must have at least one table")

    table_ids: Set[str] = set()
    for table in query.tables:
        if table.id in table_ids:
            errors.append(f"Duplicate table id '{table.id}'")
        table_ids.add(table.id)

    for index, join in enumerate(query.joins, start=1):
        if join.from_table_id not in table_ids:
            errors.append(f"Join {index}: Source table not found")
        if join.to_table_id not in table_ids:
            errors.append(f"Join {index}: Target table not found")
        if not join.conditions:
            errors.append(f"Join {index}: No join conditions specified")

    if query.filters:
        errors.extend(_check_filter_tree(query.filters, table_ids, "WHERE"))

    if query.group_by:
        if not query.group_by.columns:
            errors.append("GROUP BY specified but no columns selected")
        if query.group_by.having is not None:
            errors.extend(_check_filter_tree(query.group_by.having, table_ids, "HAVING"))

    for cte in query.ctes or []:
        errors.extend(f"CTE '{cte.name}': {error}" for error in _collect_errors(cte.query))

    for index, union in enumerate(query.unions or [], start=1):
        errors.extend(f"{union.kind} {index}: {error}" for error in _collect_errors(union.query))

    return errors


def _check_filter_tree(node, table_ids: Set[str], clause: str) -> List[str]:
    errors: List[str] = []

    if isinstance(node, FilterGroup):
        for child in node.children:
            errors.extend(_check_filter_tree(child, table_ids, clause))
        return errors

    if isinstance(node, FilterCondition):
        error = _check_condition(node, table_ids, clause)
        if error:
            errors.append(error)
        return errors

    errors.append(f"{clause}: unknown filter node {type(node).__name__}")
    return errors


def _check_condition(cond: FilterCondition, table_ids: Set[str], clause: str) -> Optional[str]:
    if cond.table_id is not None and cond.table_id not in table_ids:
        return f"{clause} filter on '{cond.column}': table '{cond.table_id}' not found"

    if cond.operator in ("BETWEEN", "NOT BETWEEN") and (cond.value is None or cond.value2 is None):
        return f"{clause} filter on '{cond.column}': {cond.operator} requires two values"

    return None
