"""Round-trip checking: SQL -> IR -> SQL, compared structurally with sqlglot.

The parser is heuristic, so a query is only "lossless" when the regenerated
text parses to the same AST as the original.
"""

import logging
from typing import List, Optional, Tuple

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError
from sqlglot.optimizer import optimize
from pydantic import BaseModel

from .dialects import Dialect, sqlglot_dialect
from .generator import ir_to_sql
from .parser import parse_sql_to_ir
from .validator import validate_ir

logger = logging.getLogger(__name__)


class SQLComparisonResult(BaseModel):
    """Result of SQL comparison."""
    equivalent: bool
    differences: List[str] = []
    original_normalized: Optional[str] = None
    regenerated_normalized: Optional[str] = None


class RoundTripResult(BaseModel):
    """Result of parsing SQL to IR and generating it back."""
    lossless: bool
    regenerated_sql: Optional[str] = None
    differences: List[str] = []
    errors: List[str] = []


def compare_sql_ast(sql1: str, sql2: str, dialect: Dialect = Dialect.POSTGRESQL) -> SQLComparisonResult:
    """
    Compare two SQL statements structurally.

    Both texts are parsed in the same dialect and reduced to one canonical
    rendering; they are equivalent when those renderings agree.

    Args:
        sql1: Original SQL text
        sql2: Regenerated SQL text
        dialect: Dialect both texts are written in
    """
    read = sqlglot_dialect(dialect)

    try:
        original, original_text = _canonical(sql1, read)
        regenerated, regenerated_text = _canonical(sql2, read)
    except (ParseError, TokenError) as e:
        return SQLComparisonResult(equivalent=False, differences=[f"Parse error: {str(e)}"])

    differences = []
    if original_text.lower() != regenerated_text.lower():
        differences = _find_ast_differences(original, regenerated) or ["SQL statements differ"]

    return SQLComparisonResult(
        equivalent=not differences,
        differences=differences,
        original_normalized=original_text,
        regenerated_normalized=regenerated_text,
    )


def _canonical(sql: str, read: str) -> Tuple[exp.Expression, str]:
    """Parse and optimize one statement; returns the tree and its normalized text."""
    tree = sqlglot.parse_one(sql, read=read)
    try:
        tree = optimize(tree, dialect=read)
    except Exception as e:
        # Schema-less optimization can fail on unqualified columns; compare the raw tree
        logger.debug(f"[round_trip] Optimizer failed, comparing raw AST: {e}")
    return tree, tree.sql(dialect=read, normalize=True, pretty=False)


def _find_ast_differences(ast1: exp.Expression, ast2: exp.Expression) -> List[str]:
    """Find specific differences between two ASTs."""
    differences = []

    select1 = ast1.find(exp.Select)
    select2 = ast2.find(exp.Select)
    if select1 and select2:
        cols1 = list(select1.expressions)
        cols2 = list(select2.expressions)
        if len(cols1) != len(cols2):
            differences.append(f"SELECT column count differs: {len(cols1)} vs {len(cols2)}")

    from1 = ast1.find(exp.From)
    from2 = ast2.find(exp.From)
    if from1 and from2 and from1.sql() != from2.sql():
        differences.append("FROM clause differs")

    joins1 = list(ast1.find_all(exp.Join))
    joins2 = list(ast2.find_all(exp.Join))
    if len(joins1) != len(joins2):
        differences.append(f"JOIN count differs: {len(joins1)} vs {len(joins2)}")

    where1 = ast1.find(exp.Where)
    where2 = ast2.find(exp.Where)
    if (where1 is None) != (where2 is None):
        differences.append("WHERE clause presence differs")
    elif where1 and where2 and where1.sql() != where2.sql():
        differences.append("WHERE conditions differ")

    for node_type, label in ((exp.Group, "GROUP BY"), (exp.Having, "HAVING"), (exp.Order, "ORDER BY")):
        if (ast1.find(node_type) is None) != (ast2.find(node_type) is None):
            differences.append(f"{label} presence differs")

    limit1 = ast1.find(exp.Limit) or ast1.find(exp.Fetch)
    limit2 = ast2.find(exp.Limit) or ast2.find(exp.Fetch)
    if (limit1 is None) != (limit2 is None):
        differences.append("LIMIT presence differs")

    return differences


def check_round_trip(sql: str, dialect: Dialect = Dialect.POSTGRESQL) -> RoundTripResult:
    """
    Parse SQL into the IR, regenerate it and compare the two texts.

    Never raises. Statements other than SELECT, and SELECTs where no FROM
    table could be extracted, are reported as not lossless.
    """
    parsed = parse_sql_to_ir(sql)

    if parsed.statement_type != "SELECT":
        return RoundTripResult(
            lossless=False,
            errors=[f"{parsed.statement_type} statements are not reconstructed into the IR"],
        )

    if not parsed.tables:
        return RoundTripResult(lossless=False, errors=["No FROM table could be extracted"])

    validation = validate_ir(parsed)
    regenerated = ir_to_sql(parsed, dialect)
    comparison = compare_sql_ast(sql, regenerated, dialect)

    return RoundTripResult(
        lossless=comparison.equivalent and validation.valid,
        regenerated_sql=regenerated,
        differences=comparison.differences,
        errors=validation.errors,
    )
