"""Pydantic models for the visual query Intermediate Representation (IR)."""

from datetime import date, datetime, time
from typing import Annotated, List, Optional, Literal, Union

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel


JoinType = Literal[
    'INNER',
    'LEFT',
    'LEFT OUTER',
    'RIGHT',
    'RIGHT OUTER',
    'FULL',
    'FULL OUTER',
    'CROSS',
    'SELF',
    'NATURAL',
    'LEFT ANTI',
    'RIGHT ANTI',
    'LEFT SEMI',
    'RIGHT SEMI',
]

FilterOperator = Literal[
    '=', '!=', '>', '<', '>=', '<=',
    'LIKE', 'NOT LIKE',
    'IN', 'NOT IN',
    'BETWEEN', 'NOT BETWEEN',
    'IS NULL', 'IS NOT NULL',
    'EXISTS', 'NOT EXISTS',
    'ALL', 'ANY', 'SOME',
]

JoinOperator = Literal['=', '!=', '>', '<', '>=', '<=']
AggregateFunction = Literal['COUNT', 'SUM', 'AVG', 'MIN', 'MAX', 'COUNT_DISTINCT']
LogicalOperator = Literal['AND', 'OR']
SortDirection = Literal['ASC', 'DESC']
SetOperation = Literal['UNION', 'UNION ALL', 'INTERSECT', 'EXCEPT']
StatementType = Literal['SELECT', 'INSERT', 'UPDATE', 'DELETE', 'CREATE', 'ALTER', 'DROP', 'TRUNCATE']

# bool must come before int to prevent coercion
FilterScalar = Optional[Union[bool, int, float, datetime, date, time, str]]
FilterValue = Union[FilterScalar, List[FilterScalar]]


class IRModel(BaseModel):
    """Shared config: camelCase on the wire, immutable once built."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class TableRef(IRModel):
    """A table placed on the canvas. Everything else refers to it by id."""
    id: str
    name: str
    alias: Optional[str] = None
    selected_columns: List[str] = []  # Editor hint, ["*"] after parsing SELECT *

    @property
    def reference(self) -> str:
        """Qualifier used for columns of this table."""
        return self.alias or self.name


class JoinCondition(IRModel):
    from_column: str
    to_column: str
    operator: JoinOperator = '='


class Join(IRModel):
    id: str
    from_table_id: str
    to_table_id: str
    join_type: JoinType = 'INNER'
    conditions: List[JoinCondition] = []


class FilterCondition(IRModel):
    """A single predicate (WHERE or HAVING)."""
    kind: Literal['condition'] = 'condition'
    table_id: Optional[str] = None  # None renders the column unqualified
    column: str
    operator: FilterOperator = '='
    value: FilterValue = None
    value2: FilterScalar = None  # Only for BETWEEN / NOT BETWEEN


class FilterGroup(IRModel):
    """Children joined by a single AND/OR operator."""
    kind: Literal['group'] = 'group'
    operator: LogicalOperator = 'AND'
    children: List['FilterNode'] = []


FilterNode = Annotated[Union[FilterCondition, FilterGroup], Field(discriminator='kind')]


class SelectedColumn(IRModel):
    table_id: str
    column_name: str
    alias: Optional[str] = None
    aggregate_function: Optional[AggregateFunction] = None
    expression: Optional[str] = None  # Overrides column formatting entirely


class GroupByColumn(IRModel):
    table_id: Optional[str] = None
    column_name: str


class GroupByClause(IRModel):
    columns: List[GroupByColumn] = []
    having: Optional[FilterNode] = None


class OrderByClause(IRModel):
    table_id: Optional[str] = None
    column_name: str
    direction: SortDirection = 'ASC'


class CommonTableExpression(IRModel):
    name: str
    query: 'Query'
    recursive: bool = False


class UnionClause(IRModel):
    kind: SetOperation = 'UNION'
    query: 'Query'


class Query(IRModel):
    """Aggregate root of the IR. CTEs and unions embed further queries."""
    name: Optional[str] = None
    description: Optional[str] = None
    tables: List[TableRef] = []
    joins: List[Join] = []
    selected_columns: List[SelectedColumn] = []
    filters: Optional[FilterGroup] = None
    group_by: Optional[GroupByClause] = None
    order_by: Optional[List[OrderByClause]] = None
    limit: Optional[int] = Field(None, ge=0)
    offset: Optional[int] = Field(None, ge=0)
    distinct: bool = False
    ctes: Optional[List[CommonTableExpression]] = None
    unions: Optional[List[UnionClause]] = None


# Coarse fragments for statements the parser does not fully reconstruct

class InsertFragment(IRModel):
    table: str
    columns: List[str] = []
    values: List[List[str]] = []


class SetAssignment(IRModel):
    column: str
    value: str


class UpdateFragment(IRModel):
    table: str
    sets: List[SetAssignment] = []


class DeleteFragment(IRModel):
    table: str


class CreateTableFragment(IRModel):
    name: str
    temporary: bool = False
    if_not_exists: bool = False
    column_definitions: List[str] = []
    columns_raw: str = ''


class AlterTableFragment(IRModel):
    table: str
    action: str
    definition: str = ''


class DropTableFragment(IRModel):
    table: str
    if_exists: bool = False
    cascade: bool = False


class TruncateFragment(IRModel):
    table: str


class ParsedQuery(Query):
    """Best-effort result of parsing SQL text; renderable like any Query."""
    statement_type: StatementType = 'SELECT'
    insert_into: Optional[InsertFragment] = None
    update_table: Optional[UpdateFragment] = None
    delete_from: Optional[DeleteFragment] = None
    create_table: Optional[CreateTableFragment] = None
    alter_table: Optional[AlterTableFragment] = None
    drop_table: Optional[DropTableFragment] = None
    truncate_table: Optional[TruncateFragment] = None


FilterGroup.model_rebuild()
GroupByClause.model_rebuild()
CommonTableExpression.model_rebuild()
UnionClause.model_rebuild()
Query.model_rebuild()
ParsedQuery.model_rebuild()
