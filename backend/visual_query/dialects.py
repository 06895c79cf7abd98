"""SQL dialects and their pagination syntax."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional


class Dialect(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    SQLSERVER = "sqlserver"


class PaginationStrategy(ABC):
    """Renders the trailing row-limiting clause for one dialect family."""

    @abstractmethod
    def render(self, limit: int, offset: Optional[int] = None) -> str:
        pass


class LimitOffsetPagination(PaginationStrategy):
    """LIMIT n [OFFSET m] (PostgreSQL, MySQL, SQLite)."""

    def render(self, limit: int, offset: Optional[int] = None) -> str:
        result = f"LIMIT {limit}"
        if offset is not None and offset > 0:
            result += f" OFFSET {offset}"
        return result


class OffsetFetchPagination(PaginationStrategy):
    """OFFSET m ROWS FETCH NEXT n ROWS ONLY (SQL Server). OFFSET is mandatory."""

    def render(self, limit: int, offset: Optional[int] = None) -> str:
        return f"OFFSET {offset or 0} ROWS FETCH NEXT {limit} ROWS ONLY"


_PAGINATION: Dict[Dialect, PaginationStrategy] = {
    Dialect.POSTGRESQL: LimitOffsetPagination(),
    Dialect.MYSQL: LimitOffsetPagination(),
    Dialect.SQLITE: LimitOffsetPagination(),
    Dialect.SQLSERVER: OffsetFetchPagination(),
}

# Reader names used when handing SQL text to sqlglot
SQLGLOT_DIALECTS: Dict[Dialect, str] = {
    Dialect.POSTGRESQL: "postgres",
    Dialect.MYSQL: "mysql",
    Dialect.SQLITE: "sqlite",
    Dialect.SQLSERVER: "tsql",
}


def get_pagination(dialect: Dialect) -> PaginationStrategy:
    return _PAGINATION[Dialect(dialect)]


def sqlglot_dialect(dialect: Dialect) -> str:
    return SQLGLOT_DIALECTS[Dialect(dialect)]
