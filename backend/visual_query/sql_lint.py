"""Lightweight lint over raw SQL text. Independent of the IR."""

import re
from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .parser import classify_statement


class SQLValidationResult(BaseModel):
    """Result of SQL lint. Serialises as {isValid, errors, warnings}."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_valid: bool
    errors: List[str] = []
    warnings: List[str] = []


SELECT_STAR_RE = re.compile(r"\bSELECT\s+(?:DISTINCT\s+)?\*", re.IGNORECASE)
FROM_RE = re.compile(r"\bFROM\b", re.IGNORECASE)
WHERE_RE = re.compile(r"\bWHERE\b", re.IGNORECASE)
ROW_LIMIT_RE = re.compile(r"\b(?:LIMIT|TOP|FETCH)\b", re.IGNORECASE)
INSERT_SOURCE_RE = re.compile(r"\b(?:VALUES|SELECT)\b", re.IGNORECASE)
COMMENT_MARKERS = ("--", "/*", "*/")


def validate_sql(sql: str) -> SQLValidationResult:
    """
    Check raw SQL for obvious problems without parsing it.

    Errors make the result invalid; warnings are advisory. Never raises.
    """
    text = (sql or "").strip()
    errors: List[str] = []
    warnings: List[str] = []

    statement_type = classify_statement(text)

    if statement_type is None:
        errors.append("Unknown or unsupported SQL query type")

    elif statement_type == "SELECT":
        if not FROM_RE.search(text):
            errors.append("Missing FROM clause")
        if SELECT_STAR_RE.search(text):
            warnings.append("Using SELECT * may impact performance. Consider selecting specific columns.")
        if not ROW_LIMIT_RE.search(text):
            warnings.append("Query does not have a LIMIT clause. This may return too many rows.")

    elif statement_type in ("UPDATE", "DELETE"):
        if not WHERE_RE.search(text):
            warnings.append(f"{statement_type} without WHERE clause will affect all rows. Use with caution.")

    elif statement_type == "INSERT":
        if not INSERT_SOURCE_RE.search(text):
            errors.append("INSERT must have VALUES clause or SELECT statement")

    if any(marker in text for marker in COMMENT_MARKERS):
        warnings.append("SQL contains comments which may indicate security issues")

    return SQLValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
