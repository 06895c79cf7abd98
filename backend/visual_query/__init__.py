"""Visual query Intermediate Representation (IR) and its SQL translators."""

from .ir_types import (
    Query,
    ParsedQuery,
    TableRef,
    Join,
    JoinCondition,
    SelectedColumn,
    FilterGroup,
    FilterCondition,
    GroupByColumn,
    GroupByClause,
    OrderByClause,
    CommonTableExpression,
    UnionClause,
)
from .dialects import Dialect, get_pagination
from .errors import VisualQueryError, QueryGenerationError
from .ids import IdFactory, SequentialIdFactory, uuid_id_factory
from .generator import ir_to_sql, format_predicate, format_value
from .parser import parse_sql_to_ir, classify_statement
from .validator import validate_ir, IRValidationResult
from .sql_lint import validate_sql, SQLValidationResult
from .round_trip import (
    check_round_trip,
    compare_sql_ast,
    RoundTripResult,
    SQLComparisonResult,
)

__all__ = [
    "Query",
    "ParsedQuery",
    "TableRef",
    "Join",
    "JoinCondition",
    "SelectedColumn",
    "FilterGroup",
    "FilterCondition",
    "GroupByColumn",
    "GroupByClause",
    "OrderByClause",
    "CommonTableExpression",
    "UnionClause",
    "Dialect",
    "get_pagination",
    "VisualQueryError",
    "QueryGenerationError",
    "IdFactory",
    "SequentialIdFactory",
    "uuid_id_factory",
    "ir_to_sql",
    "format_predicate",
    "format_value",
    "parse_sql_to_ir",
    "classify_statement",
    "validate_ir",
    "IRValidationResult",
    "validate_sql",
    "SQLValidationResult",
    "check_round_trip",
    "compare_sql_ast",
    "RoundTripResult",
    "SQLComparisonResult",
]
