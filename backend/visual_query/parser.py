"""
Heuristic SQL to IR parser.

This is a regex-driven extractor, not a grammar. It handles one statement:
WHERE is split on top-level OR and then on AND, giving at most a two-level
tree, and IN lists and BETWEEN pairs are kept as raw text.
parse_sql_to_ir() never raises; whatever it cannot match is left out.
"""

import logging
import re
from typing import Dict, List, Optional, Set, Tuple

from .ids import IdFactory, uuid_id_factory
from .ir_types import (
    ParsedQuery,
    TableRef,
    Join,
    JoinCondition,
    SelectedColumn,
    FilterCondition,
    FilterGroup,
    GroupByClause,
    GroupByColumn,
    OrderByClause,
    CommonTableExpression,
    UnionClause,
    InsertFragment,
    SetAssignment,
    UpdateFragment,
    DeleteFragment,
    CreateTableFragment,
    AlterTableFragment,
    DropTableFragment,
    TruncateFragment,
)

logger = logging.getLogger(__name__)

TableLookup = Dict[str, str]  # lower-cased name or alias -> table id

_IDENT = r"\w+(?:\.\w+)?"

# Words that may follow a table name but are never its alias
_NOT_AN_ALIAS = (
    r"(?:WHERE|ON|USING|JOIN|INNER|LEFT|RIGHT|FULL|CROSS|NATURAL|SELF|OUTER"
    r"|GROUP|ORDER|HAVING|LIMIT|OFFSET|FETCH|UNION|INTERSECT|EXCEPT|WINDOW|SET|VALUES)\b"
)
_ALIAS = rf"(?:\s+(?:AS\s+)?(?!{_NOT_AN_ALIAS})(\w+))?"

STATEMENT_RE = re.compile(
    r"^\s*(SELECT|INSERT|UPDATE|DELETE|CREATE|ALTER|DROP|TRUNCATE)\b", re.IGNORECASE
)
WITH_RE = re.compile(r"^\s*WITH\s+(RECURSIVE\s+)?", re.IGNORECASE)
CTE_HEAD_RE = re.compile(
    r"\s*(\w+)\s*(?:\([^()]*\)\s*)?AS\s*(?:(?:NOT\s+)?MATERIALIZED\s*)?\(", re.IGNORECASE
)
SET_OPERATION_RE = re.compile(r"\b(UNION\s+ALL|UNION|INTERSECT|EXCEPT)\b", re.IGNORECASE)

SELECT_HEAD_RE = re.compile(r"^\s*SELECT\s+(DISTINCT\s+)?", re.IGNORECASE)
FROM_RE = re.compile(rf"\bFROM\s+({_IDENT}){_ALIAS}", re.IGNORECASE)
JOIN_RE = re.compile(
    r"(?:\b(LEFT\s+OUTER|LEFT\s+ANTI|LEFT\s+SEMI|RIGHT\s+OUTER|RIGHT\s+ANTI|RIGHT\s+SEMI"
    r"|FULL\s+OUTER|INNER|LEFT|RIGHT|FULL|CROSS|NATURAL|SELF)\s+)?"
    rf"\bJOIN\s+({_IDENT}){_ALIAS}",
    re.IGNORECASE,
)
ON_RE = re.compile(r"^\s*ON\s+(.*)$", re.IGNORECASE | re.DOTALL)
ON_CONDITION_RE = re.compile(r"^(\w+)\.(\w+)\s*(<=|>=|<>|!=|=|<|>)\s*(\w+)\.(\w+)$")
CLAUSE_RE = re.compile(r"\b(WHERE|GROUP\s+BY|HAVING|ORDER\s+BY|LIMIT|OFFSET|FETCH)\b", re.IGNORECASE)

COMMA_RE = re.compile(r",")
OR_RE = re.compile(r"\s+OR\s+", re.IGNORECASE)
AND_RE = re.compile(r"\s+AND\s+", re.IGNORECASE)
BETWEEN_RE = re.compile(r"\bBETWEEN\b", re.IGNORECASE)

TABLE_COLUMN_RE = re.compile(r"^(\w+)\.(\w+)(?:\s+(?:AS\s+)?(\w+))?$", re.IGNORECASE)
BARE_COLUMN_RE = re.compile(r"^(\w+)(?:\s+(?:AS\s+)?(\w+))?$", re.IGNORECASE)
AGGREGATE_RE = re.compile(
    r"^(COUNT|SUM|AVG|MIN|MAX)\s*\(\s*(DISTINCT\s+)?(?:(\w+)\.)?(\w+)\s*\)(?:\s+(?:AS\s+)?(\w+))?$",
    re.IGNORECASE,
)
EXPRESSION_ALIAS_RE = re.compile(r"^(.*?)\s+AS\s+(\w+)$", re.IGNORECASE | re.DOTALL)

CONDITION_RE = re.compile(
    r"^(?P<column>\w+\s*\([^()]*\)|\w+(?:\.\w+)?)\s*"
    r"(?P<operator>NOT\s+BETWEEN\b|BETWEEN\b|IS\s+NOT\s+NULL\b|IS\s+NULL\b|NOT\s+LIKE\b|LIKE\b"
    r"|NOT\s+IN\b|IN\b|<=|>=|<>|!=|=|<|>)"
    r"\s*(?P<value>.+)?$",
    re.IGNORECASE | re.DOTALL,
)
EXISTS_RE = re.compile(r"^(NOT\s+EXISTS|EXISTS)\s*(.+)$", re.IGNORECASE | re.DOTALL)
ORDER_ITEM_RE = re.compile(
    r"^(\S+?)(?:\s+(ASC|DESC))?(?:\s+NULLS\s+(?:FIRST|LAST))?$", re.IGNORECASE
)

INTEGER_RE = re.compile(r"^-?\d+$")
FLOAT_RE = re.compile(r"^-?(?:\d+\.\d*|\.\d+)$")

INSERT_RE = re.compile(
    rf"^\s*INSERT\s+INTO\s+({_IDENT})\s*(?:\(([^)]*)\))?\s*(?:VALUES\s*(.*))?",
    re.IGNORECASE | re.DOTALL,
)
UPDATE_RE = re.compile(
    rf"^\s*UPDATE\s+({_IDENT})\s+SET\s+(.*?)(?:\s+WHERE\s+(.*))?$", re.IGNORECASE | re.DOTALL
)
DELETE_RE = re.compile(
    rf"^\s*DELETE\s+FROM\s+({_IDENT})(?:\s+WHERE\s+(.*))?$", re.IGNORECASE | re.DOTALL
)
CREATE_TABLE_RE = re.compile(
    rf"^\s*CREATE\s+(TEMP(?:ORARY)?\s+)?TABLE\s+(IF\s+NOT\s+EXISTS\s+)?({_IDENT})\s*\((.*)\)",
    re.IGNORECASE | re.DOTALL,
)
ALTER_TABLE_RE = re.compile(
    rf"^\s*ALTER\s+TABLE\s+({_IDENT})\s+(ADD|DROP|MODIFY|RENAME|ALTER)\b\s*(.*)$",
    re.IGNORECASE | re.DOTALL,
)
DROP_TABLE_RE = re.compile(
    rf"^\s*DROP\s+TABLE\s+(IF\s+EXISTS\s+)?({_IDENT})(\s+CASCADE)?", re.IGNORECASE
)
TRUNCATE_RE = re.compile(rf"^\s*TRUNCATE\s+(?:TABLE\s+)?({_IDENT})", re.IGNORECASE)

_MIRRORED_OPERATORS = {"<": ">", ">": "<", "<=": ">=", ">=": "<="}


def parse_sql_to_ir(sql: str, id_factory: Optional[IdFactory] = None) -> ParsedQuery:
    """
    Parse SQL text into a best-effort ParsedQuery.

    Args:
        sql: SQL text (one statement)
        id_factory: Source of table/join ids; defaults to random unique ids

    Returns:
        ParsedQuery. SELECT statements are fully reconstructed; other
        statement kinds only carry a coarse fragment (table name plus raw
        column/value text).
    """
    return _parse_statement(sql or "", id_factory or uuid_id_factory)


def classify_statement(sql: str) -> Optional[str]:
    """Statement kind from the first keyword (after any WITH block), or None."""
    ctes, _, remainder = _split_ctes((sql or "").strip())
    match = STATEMENT_RE.match(remainder.lstrip("( \t\r\n"))
    if match:
        return match.group(1).upper()
    return "SELECT" if ctes else None


def _parse_statement(sql: str, ids: IdFactory) -> ParsedQuery:
    text = sql.strip().rstrip(";").strip()

    cte_parts, recursive, text = _split_ctes(text)
    ctes = [
        CommonTableExpression(name=name, query=_parse_statement(body, ids), recursive=recursive)
        for name, body in cte_parts
    ]

    match = STATEMENT_RE.match(text.lstrip("( \t\r\n"))
    statement_type = match.group(1).upper() if match else "SELECT"

    if statement_type == "SELECT":
        fields = _parse_select_statement(text, ids)
    else:
        fields = _DML_PARSERS[statement_type](text)

    return ParsedQuery(
        name="Imported SQL Query",
        description=f"Imported {statement_type} query from SQL",
        statement_type=statement_type,
        ctes=ctes or None,
        **fields,
    )


def _parse_select_statement(text: str, ids: IdFactory) -> dict:
    head, branches = _split_set_operations(text)
    fields = _parse_select(_strip_wrapping_parens(head), ids)

    if branches:
        fields["unions"] = [
            UnionClause(kind=kind, query=_parse_statement(_strip_wrapping_parens(branch), ids))
            for kind, branch in branches
        ]

    return fields


def _parse_select(text: str, ids: IdFactory) -> dict:
    """Reconstruct a single SELECT: FROM, JOINs, column list, then the trailing clauses."""
    tables: List[TableRef] = []
    lookup: TableLookup = {}
    anchor_id: Optional[str] = None

    # FROM first, so later steps can resolve table names and aliases
    from_match = _search_top_level(FROM_RE, text)
    if from_match:
        anchor = _register_table(from_match.group(1), from_match.group(2), ids, lookup)
        tables.append(anchor)
        anchor_id = anchor.id
    else:
        logger.debug("[parser] No FROM clause matched; query will have no anchor table")

    body_start = from_match.end() if from_match else 0
    clauses, clauses_start = _split_clauses(text, body_start)

    joins = _parse_joins(text, body_start, clauses_start, ids, tables, lookup, anchor_id)

    fields: dict = {"joins": joins}

    select_head = SELECT_HEAD_RE.match(text)
    fields["distinct"] = bool(select_head and select_head.group(1))
    aliases: Set[str] = set()
    if select_head and from_match:
        columns_text = text[select_head.end():from_match.start()].strip()
        if columns_text == "*":
            tables = [table.model_copy(update={"selected_columns": ["*"]}) for table in tables]
            fields["selected_columns"] = []
        else:
            columns = _parse_select_list(columns_text, lookup, anchor_id)
            aliases = {col.alias.lower() for col in columns if col.alias}
            fields["selected_columns"] = columns
    fields["tables"] = tables

    if "WHERE" in clauses:
        fields["filters"] = _parse_filter_clause(clauses["WHERE"], lookup, anchor_id)

    group_columns = None
    if "GROUP BY" in clauses:
        group_columns = []
        for item in _split_top_level(clauses["GROUP BY"], COMMA_RE):
            table_id, column = _resolve_column(item, lookup, anchor_id, aliases)
            group_columns.append(GroupByColumn(table_id=table_id, column_name=column))

    having = None
    if "HAVING" in clauses:
        having = _parse_filter_clause(clauses["HAVING"], lookup, anchor_id)

    if group_columns is not None or having is not None:
        fields["group_by"] = GroupByClause(columns=group_columns or [], having=having)

    if "ORDER BY" in clauses:
        fields["order_by"] = _parse_order_by(clauses["ORDER BY"], lookup, anchor_id, aliases)

    fields.update(_parse_pagination(clauses))
    return fields


def _register_table(name: str, alias: Optional[str], ids: IdFactory, lookup: TableLookup) -> TableRef:
    table = TableRef(id=ids("table"), name=name, alias=alias or None)
    lookup[name.lower()] = table.id
    lookup[name.split(".")[-1].lower()] = table.id
    if alias:
        lookup[alias.lower()] = table.id
    return table


def _parse_joins(
    text: str,
    start: int,
    end: int,
    ids: IdFactory,
    tables: List[TableRef],
    lookup: TableLookup,
    anchor_id: Optional[str],
) -> List[Join]:
    """Scan JOINs between FROM and the first trailing clause, in source order."""
    mask = _top_level_mask(text)
    matches = [m for m in JOIN_RE.finditer(text, start, end) if mask[m.start()]]
    joins = []

    for index, match in enumerate(matches):
        join_type = " ".join((match.group(1) or "INNER").upper().split())
        table = _register_table(match.group(2), match.group(3), ids, lookup)
        tables.append(table)

        segment_end = matches[index + 1].start() if index + 1 < len(matches) else end
        conditions, from_table_id = _parse_on_clause(
            text[match.end():segment_end], lookup, table.id, anchor_id
        )

        joins.append(Join(
            id=ids("join"),
            from_table_id=from_table_id or "",
            to_table_id=table.id,
            join_type=join_type,
            conditions=conditions,
        ))

    return joins


def _parse_on_clause(
    segment: str, lookup: TableLookup, joined_id: str, anchor_id: Optional[str]
) -> Tuple[List[JoinCondition], Optional[str]]:
    """ON predicates of one join, plus the id of the table it joins from."""
    on_match = ON_RE.match(segment)
    if not on_match:
        return [], anchor_id

    conditions = []
    from_table_id = None
    for part in _split_top_level(_strip_wrapping_parens(on_match.group(1)), AND_RE):
        match = ON_CONDITION_RE.match(_strip_wrapping_parens(part))
        if not match:
            logger.debug(f"[parser] Dropping unrecognised join condition: {part!r}")
            continue

        left_alias, left_column, operator, right_alias, right_column = match.groups()
        operator = "!=" if operator == "<>" else operator
        left_id = lookup.get(left_alias.lower())
        right_id = lookup.get(right_alias.lower())

        # Written as "joined.col = earlier.col": flip so the join reads from the earlier table
        if left_id == joined_id and right_id is not None and right_id != joined_id:
            left_id, right_id = right_id, left_id
            left_column, right_column = right_column, left_column
            operator = _MIRRORED_OPERATORS.get(operator, operator)

        if from_table_id is None:
            from_table_id = left_id or anchor_id

        conditions.append(JoinCondition(
            from_column=left_column,
            to_column=right_column,
            operator=operator,
        ))

    return conditions, from_table_id or anchor_id


def _parse_select_list(text: str, lookup: TableLookup, anchor_id: Optional[str]) -> List[SelectedColumn]:
    columns = []
    for item in _split_top_level(text, COMMA_RE):
        table_column = TABLE_COLUMN_RE.match(item)
        bare_column = BARE_COLUMN_RE.match(item)
        aggregate = AGGREGATE_RE.match(item)

        if table_column:
            qualifier, column_name, alias = table_column.groups()
            columns.append(SelectedColumn(
                table_id=lookup.get(qualifier.lower(), anchor_id or ""),
                column_name=column_name,
                alias=alias,
            ))
        elif bare_column:
            column_name, alias = bare_column.groups()
            columns.append(SelectedColumn(
                table_id=anchor_id or "",
                column_name=column_name,
                alias=alias,
            ))
        elif aggregate and (not aggregate.group(2) or aggregate.group(1).upper() == "COUNT"):
            function, distinct, qualifier, column_name, alias = aggregate.groups()
            function = "COUNT_DISTINCT" if distinct else function.upper()
            table_id = lookup.get(qualifier.lower(), anchor_id) if qualifier else anchor_id
            columns.append(SelectedColumn(
                table_id=table_id or "",
                column_name=column_name,
                alias=alias,
                aggregate_function=function,
            ))
        else:
            # Anything else is kept verbatim as a computed column
            alias_match = EXPRESSION_ALIAS_RE.match(item)
            expression, alias = alias_match.groups() if alias_match else (item, None)
            columns.append(SelectedColumn(
                table_id=anchor_id or "",
                column_name=alias or expression,
                alias=alias,
                expression=expression,
            ))

    return columns


def _parse_filter_clause(text: str, lookup: TableLookup, anchor_id: Optional[str]) -> FilterGroup:
    """
    Split on top-level OR, then each branch on AND.

    Produces an OR group whose children are conditions or AND groups, or a
    single AND group when there is no OR. Deeper nesting is not rebuilt: a
    parenthesized conjunct that is itself an AND/OR expression is dropped.
    """
    text = _strip_wrapping_parens(text)
    or_branches = _split_top_level(text, OR_RE)

    if len(or_branches) > 1:
        children = []
        for branch in or_branches:
            conjuncts = _split_conjuncts(_strip_wrapping_parens(branch))
            if len(conjuncts) > 1:
                children.append(FilterGroup(
                    operator="AND",
                    children=_parse_conditions(conjuncts, lookup, anchor_id),
                ))
            else:
                children.extend(_parse_conditions(conjuncts, lookup, anchor_id))
        return FilterGroup(operator="OR", children=children)

    return FilterGroup(
        operator="AND",
        children=_parse_conditions(_split_conjuncts(text), lookup, anchor_id),
    )


def _split_conjuncts(text: str) -> List[str]:
    """Split on top-level AND, keeping 'x BETWEEN a AND b' together."""
    conjuncts: List[str] = []
    pending = None
    for piece in _split_top_level(text, AND_RE):
        if pending is not None:
            conjuncts.append(f"{pending} AND {piece}")
            pending = None
        elif _search_top_level(BETWEEN_RE, piece):
            pending = piece
        else:
            conjuncts.append(piece)
    if pending is not None:
        conjuncts.append(pending)
    return conjuncts


def _parse_conditions(texts: List[str], lookup: TableLookup, anchor_id: Optional[str]) -> List[FilterCondition]:
    conditions = []
    for text in texts:
        text = _strip_wrapping_parens(text)
        if len(_split_top_level(text, OR_RE)) > 1 or len(_split_conjuncts(text)) > 1:
            # The tree stops at OR -> AND; deeper boolean nesting is not rebuilt
            logger.debug(f"[parser] Dropping nested boolean expression: {text!r}")
            continue
        condition = _parse_condition(text, lookup, anchor_id)
        if condition is not None:
            conditions.append(condition)
    return conditions


def _parse_condition(text: str, lookup: TableLookup, anchor_id: Optional[str]) -> Optional[FilterCondition]:
    exists = EXISTS_RE.match(text)
    if exists:
        return FilterCondition(
            column="",
            operator=" ".join(exists.group(1).upper().split()),
            value=exists.group(2).strip(),
        )

    match = CONDITION_RE.match(text)
    if not match:
        logger.debug(f"[parser] Dropping unrecognised condition: {text!r}")
        return None

    operator = " ".join(match.group("operator").upper().split())
    if operator == "<>":
        operator = "!="

    table_id, column = _resolve_column(match.group("column"), lookup, anchor_id)
    return FilterCondition(
        table_id=table_id,
        column=column,
        operator=operator,
        value=_clean_value(match.group("value"), operator),
    )


def _resolve_column(
    reference: str,
    lookup: TableLookup,
    anchor_id: Optional[str],
    aliases: Optional[Set[str]] = None,
) -> Tuple[Optional[str], str]:
    """(table id, column) for 'table.column' or a bare column on the anchor table."""
    reference = reference.strip()
    if "(" in reference or reference.isdigit():
        return None, reference
    if "." in reference:
        qualifier, column = reference.rsplit(".", 1)
        return lookup.get(qualifier.lower(), anchor_id), column
    if aliases and reference.lower() in aliases:
        return None, reference
    return anchor_id, reference


def _clean_value(raw: Optional[str], operator: str):
    if raw is None or operator in ("IS NULL", "IS NOT NULL"):
        return None

    value = raw.strip()
    if operator in ("IN", "NOT IN"):
        return _strip_wrapping_parens(value)
    if operator in ("BETWEEN", "NOT BETWEEN"):
        return AND_RE.sub(" AND ", value, count=1)
    return _parse_literal(value)


def _parse_literal(text: str):
    """Unquote strings, and read numbers, booleans and NULL."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        quote = text[0]
        return text[1:-1].replace(quote * 2, quote)

    upper = text.upper()
    if upper == "NULL":
        return None
    if upper in ("TRUE", "FALSE"):
        return upper == "TRUE"
    if INTEGER_RE.match(text):
        return int(text)
    if FLOAT_RE.match(text):
        return float(text)
    return text


def _parse_order_by(
    text: str, lookup: TableLookup, anchor_id: Optional[str], aliases: Set[str]
) -> List[OrderByClause]:
    order_by = []
    for item in _split_top_level(text, COMMA_RE):
        match = ORDER_ITEM_RE.match(item)
        if not match:
            logger.debug(f"[parser] Dropping unrecognised ORDER BY item: {item!r}")
            continue
        table_id, column = _resolve_column(match.group(1), lookup, anchor_id, aliases)
        order_by.append(OrderByClause(
            table_id=table_id,
            column_name=column,
            direction=(match.group(2) or "ASC").upper(),
        ))
    return order_by


def _parse_pagination(clauses: Dict[str, str]) -> dict:
    fields = {}

    limit = re.match(r"^(\d+)(?:\s*,\s*(\d+))?", clauses.get("LIMIT", ""))
    if limit:
        if limit.group(2):
            # MySQL: LIMIT offset, count
            fields["offset"] = int(limit.group(1))
            fields["limit"] = int(limit.group(2))
        else:
            fields["limit"] = int(limit.group(1))

    offset = re.match(r"^(\d+)", clauses.get("OFFSET", ""))
    if offset:
        fields["offset"] = int(offset.group(1))

    fetch = re.match(r"^(?:NEXT|FIRST)\s+(\d+)", clauses.get("FETCH", ""), re.IGNORECASE)
    if fetch and "limit" not in fields:
        fields["limit"] = int(fetch.group(1))

    return fields


# Non-SELECT statements: coarse fragments only

def _parse_insert(text: str) -> dict:
    match = INSERT_RE.match(text)
    if not match:
        return {}
    table, columns_text, values_text = match.groups()
    columns = _split_top_level(columns_text or "", COMMA_RE)
    rows = [
        _split_top_level(_strip_wrapping_parens(row), COMMA_RE)
        for row in _split_top_level(values_text or "", COMMA_RE)
    ]
    return {"insert_into": InsertFragment(table=table, columns=columns, values=rows)}


def _parse_update(text: str) -> dict:
    match = UPDATE_RE.match(text)
    if not match:
        return {}
    table, set_text, where_text = match.groups()

    sets = []
    for assignment in _split_top_level(set_text, COMMA_RE):
        column, separator, value = assignment.partition("=")
        if separator:
            sets.append(SetAssignment(column=column.strip(), value=value.strip()))

    fields = {"update_table": UpdateFragment(table=table, sets=sets)}
    if where_text:
        fields["filters"] = _parse_filter_clause(where_text, {}, None)
    return fields


def _parse_delete(text: str) -> dict:
    match = DELETE_RE.match(text)
    if not match:
        return {}
    fields = {"delete_from": DeleteFragment(table=match.group(1))}
    if match.group(2):
        fields["filters"] = _parse_filter_clause(match.group(2), {}, None)
    return fields


def _parse_create(text: str) -> dict:
    match = CREATE_TABLE_RE.match(text)
    if not match:
        return {}
    temporary, if_not_exists, name, columns_raw = match.groups()
    return {"create_table": CreateTableFragment(
        name=name,
        temporary=bool(temporary),
        if_not_exists=bool(if_not_exists),
        column_definitions=_split_top_level(columns_raw, COMMA_RE),
        columns_raw=columns_raw.strip(),
    )}


def _parse_alter(text: str) -> dict:
    match = ALTER_TABLE_RE.match(text)
    if not match:
        return {}
    return {"alter_table": AlterTableFragment(
        table=match.group(1),
        action=match.group(2).upper(),
        definition=match.group(3).strip(),
    )}


def _parse_drop(text: str) -> dict:
    match = DROP_TABLE_RE.match(text)
    if not match:
        return {}
    return {"drop_table": DropTableFragment(
        table=match.group(2),
        if_exists=bool(match.group(1)),
        cascade=bool(match.group(3)),
    )}


def _parse_truncate(text: str) -> dict:
    match = TRUNCATE_RE.match(text)
    if not match:
        return {}
    return {"truncate_table": TruncateFragment(table=match.group(1))}


_DML_PARSERS = {
    "INSERT": _parse_insert,
    "UPDATE": _parse_update,
    "DELETE": _parse_delete,
    "CREATE": _parse_create,
    "ALTER": _parse_alter,
    "DROP": _parse_drop,
    "TRUNCATE": _parse_truncate,
}


# Text helpers: parenthesis/quote aware scanning

def _top_level_mask(text: str) -> List[bool]:
    """True for each character outside parentheses and quoted literals."""
    mask = []
    depth = 0
    quote = None
    for char in text:
        if quote:
            mask.append(False)
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
            mask.append(False)
        elif char == "(":
            depth += 1
            mask.append(False)
        elif char == ")":
            depth = max(depth - 1, 0)
            mask.append(False)
        else:
            mask.append(depth == 0)
    return mask


def _split_top_level(text: str, pattern: re.Pattern) -> List[str]:
    """Split on matches of pattern that sit outside parentheses and quotes."""
    mask = _top_level_mask(text)
    parts = []
    start = 0
    for match in pattern.finditer(text):
        if not mask[match.start()]:
            continue
        parts.append(text[start:match.start()])
        start = match.end()
    parts.append(text[start:])
    return [part.strip() for part in parts if part.strip()]


def _search_top_level(pattern: re.Pattern, text: str, start: int = 0):
    mask = _top_level_mask(text)
    for match in pattern.finditer(text, start):
        if mask[match.start()]:
            return match
    return None


def _split_clauses(text: str, start: int) -> Tuple[Dict[str, str], int]:
    """
    Bodies of the trailing clauses (WHERE ... FETCH), each bounded by the
    next recognised keyword or end of input, plus where the first one starts.
    """
    mask = _top_level_mask(text)
    found = [m for m in CLAUSE_RE.finditer(text, start) if mask[m.start()]]

    clauses: Dict[str, str] = {}
    for index, match in enumerate(found):
        keyword = " ".join(match.group(1).upper().split())
        end = found[index + 1].start() if index + 1 < len(found) else len(text)
        clauses.setdefault(keyword, text[match.end():end].strip())

    return clauses, (found[0].start() if found else len(text))


def _matching_paren(text: str, open_index: int) -> int:
    """Index of the parenthesis closing the one at open_index, or -1."""
    depth = 0
    quote = None
    for index in range(open_index, len(text)):
        char = text[index]
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _strip_wrapping_parens(text: str) -> str:
    text = text.strip()
    while text.startswith("(") and _matching_paren(text, 0) == len(text) - 1:
        text = text[1:-1].strip()
    return text


def _split_ctes(text: str) -> Tuple[List[Tuple[str, str]], bool, str]:
    """Peel a leading WITH block off: ([(name, body)], recursive, remainder)."""
    match = WITH_RE.match(text)
    if not match:
        return [], False, text

    ctes = []
    position = match.end()
    while True:
        head = CTE_HEAD_RE.match(text, position)
        if not head:
            break
        open_index = head.end() - 1
        close_index = _matching_paren(text, open_index)
        if close_index < 0:
            break
        ctes.append((head.group(1), text[open_index + 1:close_index]))
        position = close_index + 1

        comma = re.match(r"\s*,", text[position:])
        if not comma:
            break
        position += comma.end()

    return ctes, bool(match.group(1)), text[position:]


def _split_set_operations(text: str) -> Tuple[str, List[Tuple[str, str]]]:
    """Split on top-level UNION [ALL] / INTERSECT / EXCEPT."""
    mask = _top_level_mask(text)
    head = text
    branches: List[Tuple[str, str]] = []
    kind = None
    start = 0

    for match in SET_OPERATION_RE.finditer(text):
        if not mask[match.start()]:
            continue
        segment = text[start:match.start()]
        if kind is None:
            head = segment
        else:
            branches.append((kind, segment))
        kind = " ".join(match.group(1).upper().split())
        start = match.end()

    if kind is not None:
        branches.append((kind, text[start:]))

    return head, branches
