"""
SQL Generator - Converts IR to SQL.

Clause order is fixed: WITH, SELECT, FROM, JOINs, WHERE, GROUP BY / HAVING,
ORDER BY, pagination. Anything that cannot be resolved (a join or filter
pointing at an unknown table id) is dropped rather than raised; use
validate_ir() beforehand to detect it.
"""

import logging
from datetime import date, datetime, time
from typing import Dict, List, Optional

from .dialects import Dialect, get_pagination
from .errors import QueryGenerationError
from .ir_types import (
    Query,
    TableRef,
    Join,
    SelectedColumn,
    FilterGroup,
    FilterCondition,
    GroupByClause,
    OrderByClause,
    CommonTableExpression,
)

logger = logging.getLogger(__name__)

TableLookup = Dict[str, TableRef]


def ir_to_sql(query: Query, dialect: Dialect = Dialect.POSTGRESQL) -> str:
    """
    Convert a Query IR to SQL text.

    Raises QueryGenerationError only when the query has no tables, since
    there is nothing to put in the FROM clause.
    """
    if not query.tables:
        raise QueryGenerationError("No tables specified in query")

    tables = {table.id: table for table in query.tables}
    parts = []

    # WITH
    if query.ctes:
        parts.append(generate_cte_clause(query.ctes, dialect))

    parts.append(generate_select_clause(query, tables))
    parts.append("FROM " + format_table(query.tables[0]))

    for join in query.joins:
        join_sql = generate_join_clause(join, tables)
        if join_sql:
            parts.append(join_sql)

    # WHERE
    if query.filters and query.filters.children:
        where = generate_filter_group(query.filters, tables)
        if where:
            parts.append("WHERE " + where)

    if query.group_by:
        parts.extend(generate_group_by_clause(query.group_by, tables))

    if query.order_by:
        parts.append("ORDER BY " + generate_order_by_clause(query.order_by, tables))

    if query.limit is not None:
        parts.append(get_pagination(dialect).render(query.limit, query.offset))

    for union in query.unions or []:
        parts.append(union.kind)
        parts.append(ir_to_sql(union.query, dialect))

    return "\n".join(parts)


def generate_cte_clause(ctes: List[CommonTableExpression], dialect: Dialect) -> str:
    keyword = "WITH RECURSIVE" if any(cte.recursive for cte in ctes) else "WITH"
    statements = [f"{cte.name} AS (\n{ir_to_sql(cte.query, dialect)}\n)" for cte in ctes]
    return f"{keyword} " + ",\n".join(statements)


def generate_select_clause(query: Query, tables: TableLookup) -> str:
    """Generate the SELECT line; no columns means SELECT *."""
    if not query.selected_columns:
        return "SELECT *"

    keyword = "SELECT DISTINCT" if query.distinct else "SELECT"
    columns = [generate_select_column(col, tables) for col in query.selected_columns]
    return f"{keyword} " + ", ".join(columns)


def generate_select_column(col: SelectedColumn, tables: TableLookup) -> str:
    """Generate a single SELECT column expression."""
    table = tables.get(col.table_id)

    if col.expression:
        result = col.expression
    elif table is None:
        result = col.column_name
    elif col.aggregate_function == "COUNT_DISTINCT":
        result = f"COUNT(DISTINCT {table.reference}.{col.column_name})"
    elif col.aggregate_function:
        result = f"{col.aggregate_function}({table.reference}.{col.column_name})"
    else:
        result = f"{table.reference}.{col.column_name}"

    if col.alias:
        result += f" AS {col.alias}"

    return result


def format_table(table: TableRef) -> str:
    """Table name as it appears after FROM / JOIN."""
    if table.alias:
        return f"{table.name} AS {table.alias}"
    return table.name


def generate_join_clause(join: Join, tables: TableLookup) -> str:
    """Generate a JOIN line, or '' when either side is not a known table."""
    from_table = tables.get(join.from_table_id)
    to_table = tables.get(join.to_table_id)
    if from_table is None or to_table is None:
        logger.debug(f"[generator] Skipping join {join.id}: unresolved table reference")
        return ""

    result = f"{join.join_type} JOIN {format_table(to_table)}"

    conditions = [
        f"{from_table.reference}.{cond.from_column} {cond.operator} {to_table.reference}.{cond.to_column}"
        for cond in join.conditions
    ]
    if conditions:
        result += " ON " + " AND ".join(conditions)

    return result


def generate_filter_group(group: FilterGroup, tables: TableLookup) -> str:
    """Generate WHERE/HAVING filter expression. Nested groups are parenthesized."""
    parts = []
    for node in group.children:
        if isinstance(node, FilterGroup):
            nested = generate_filter_group(node, tables)
            if nested:
                parts.append(f"({nested})")
        elif isinstance(node, FilterCondition):
            condition = generate_filter_condition(node, tables)
            if condition:
                parts.append(condition)
        else:
            raise QueryGenerationError(f"Unknown filter node: {type(node).__name__}")

    return f" {group.operator} ".join(parts)


def generate_filter_condition(cond: FilterCondition, tables: TableLookup) -> str:
    """Generate a single filter condition, or '' when its table is unknown."""
    if cond.table_id is None:
        column = cond.column
    else:
        table = tables.get(cond.table_id)
        if table is None:
            logger.debug(
                f"[generator] Skipping filter on '{cond.column}': unknown table id '{cond.table_id}'"
            )
            return ""
        column = f"{table.reference}.{cond.column}"

    return format_predicate(column, cond.operator, cond.value, cond.value2)


def format_predicate(column: str, operator: str, value=None, value2=None) -> str:
    """Render one predicate against an already formatted column reference."""
    if operator in ("IS NULL", "IS NOT NULL"):
        return f"{column} {operator}"

    if operator in ("BETWEEN", "NOT BETWEEN"):
        return f"{column} {operator} {format_value(value)} AND {format_value(value2)}"

    if operator in ("IN", "NOT IN"):
        if isinstance(value, (list, tuple)):
            values = ", ".join(format_value(v) for v in value)
        else:
            values = format_value(value)
        return f"{column} {operator} ({values})"

    if operator in ("EXISTS", "NOT EXISTS"):
        # Value is the raw sub-query text
        return f"{operator} {value}"

    return f"{column} {operator} {format_value(value)}"


def generate_group_by_clause(group_by: GroupByClause, tables: TableLookup) -> List[str]:
    """GROUP BY line plus an optional HAVING line."""
    lines = []
    if group_by.columns:
        columns = [
            qualify_column(col.table_id, col.column_name, tables)
            for col in group_by.columns
        ]
        lines.append("GROUP BY " + ", ".join(columns))

    having = group_by.having
    if isinstance(having, FilterCondition):
        having = FilterGroup(children=[having])
    if having is not None and having.children:
        having_sql = generate_filter_group(having, tables)
        if having_sql:
            lines.append("HAVING " + having_sql)

    return lines


def generate_order_by_clause(order_by: List[OrderByClause], tables: TableLookup) -> str:
    return ", ".join(
        f"{qualify_column(order.table_id, order.column_name, tables)} {order.direction}"
        for order in order_by
    )


def qualify_column(table_id: Optional[str], column_name: str, tables: TableLookup) -> str:
    """table.column when the table is known, otherwise the bare column."""
    table = tables.get(table_id) if table_id is not None else None
    if table is None:
        return column_name
    return f"{table.reference}.{column_name}"


def format_value(value) -> str:
    """Format a literal value for SQL."""
    if value is None:
        return "NULL"
    elif isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    elif isinstance(value, str):
        # Escape single quotes
        escaped = value.replace("'", "''")
        return f"'{escaped}'"
    elif isinstance(value, (datetime, date, time)):
        return f"'{value.isoformat()}'"
    else:
        return str(value)
