from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError
import logging
import traceback
from typing import Dict, Any, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

import config

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

if config.DEBUG_SQL_IR:
    logging.getLogger("visual_query").setLevel(logging.DEBUG)

from visual_query import (
    Dialect,
    Query,
    QueryGenerationError,
    IRValidationResult,
    SQLValidationResult,
    RoundTripResult,
    parse_sql_to_ir,
    ir_to_sql,
    validate_ir,
    validate_sql,
    check_round_trip,
)

app = FastAPI(title="Visual Query Translator")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": "Visual Query Translator API", "status": "running"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def _require_sql(sql: str) -> str:
    if not sql or not sql.strip():
        raise HTTPException(status_code=400, detail="SQL query is required")
    return sql


def _resolve_dialect(name: Optional[str]) -> Dialect:
    try:
        return Dialect((name or config.DEFAULT_DIALECT).lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unsupported dialect: {name}")


def _format_validation_errors(e: ValidationError) -> list:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" if err['loc'] else err['msg']
        for err in e.errors()
    ]


class SqlToIRRequest(BaseModel):
    sql: str


class SqlToIRResponse(BaseModel):
    success: bool
    ir: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@app.post("/api/sql-to-ir", response_model=SqlToIRResponse)
async def sql_to_ir_endpoint(req: SqlToIRRequest):
    """
    Parse SQL query into Intermediate Representation (IR) for the visual builder.

    Parsing is best effort: anything the parser does not recognise is left out
    of the IR rather than reported as an error.
    """
    _require_sql(req.sql)
    try:
        ir = parse_sql_to_ir(req.sql)
        return SqlToIRResponse(
            success=True,
            ir=ir.model_dump(mode="json", by_alias=True),
        )
    except Exception as e:
        logger.error(f"[sql_to_ir] Unexpected error: {e}")
        logger.error(traceback.format_exc())
        return SqlToIRResponse(
            success=False,
            error=f"Failed to parse SQL: {str(e)}",
        )


class IRToSqlRequest(BaseModel):
    ir: Dict[str, Any]
    dialect: Optional[str] = None


class IRToSqlResponse(BaseModel):
    success: bool
    sql: Optional[str] = None
    error: Optional[str] = None


@app.post("/api/ir-to-sql", response_model=IRToSqlResponse)
async def ir_to_sql_endpoint(req: IRToSqlRequest):
    """
    Convert Intermediate Representation (IR) back to SQL string.
    """
    dialect = _resolve_dialect(req.dialect)
    try:
        ir = Query.model_validate(req.ir)
        sql = ir_to_sql(ir, dialect)

        return IRToSqlResponse(
            success=True,
            sql=sql,
        )
    except ValidationError as e:
        logger.info(f"[ir_to_sql] Invalid IR: {e.error_count()} error(s)")
        return IRToSqlResponse(
            success=False,
            error="Invalid IR: " + "; ".join(_format_validation_errors(e)),
        )
    except QueryGenerationError as e:
        logger.info(f"[ir_to_sql] Cannot generate SQL: {e}")
        return IRToSqlResponse(
            success=False,
            error=f"Failed to generate SQL: {str(e)}",
        )
    except Exception as e:
        logger.error(f"[ir_to_sql] Error: {e}")
        logger.error(traceback.format_exc())
        return IRToSqlResponse(
            success=False,
            error=f"Failed to generate SQL: {str(e)}",
        )


class ValidateIRRequest(BaseModel):
    ir: Dict[str, Any]


@app.post("/api/validate-ir", response_model=IRValidationResult)
async def validate_ir_endpoint(req: ValidateIRRequest):
    """Structural validation of an IR document. Malformed documents are reported, not rejected."""
    try:
        ir = Query.model_validate(req.ir)
    except ValidationError as e:
        return IRValidationResult(valid=False, errors=_format_validation_errors(e))
    return validate_ir(ir)


class ValidateSqlRequest(BaseModel):
    sql: str


@app.post("/api/validate-sql", response_model=SQLValidationResult)
async def validate_sql_endpoint(req: ValidateSqlRequest):
    """Lint raw SQL text (statement type, FROM, LIMIT, WHERE, comments)."""
    _require_sql(req.sql)
    return validate_sql(req.sql)


class RoundTripRequest(BaseModel):
    sql: str
    dialect: Optional[str] = None


@app.post("/api/round-trip", response_model=RoundTripResult)
async def round_trip_endpoint(req: RoundTripRequest):
    """Parse SQL to IR, regenerate it, and report whether anything was lost."""
    _require_sql(req.sql)
    dialect = _resolve_dialect(req.dialect)
    try:
        return check_round_trip(req.sql, dialect)
    except Exception as e:
        logger.error(f"[round_trip] Unexpected error: {e}")
        logger.error(traceback.format_exc())
        raise HTTPException(status_code=500, detail=str(e))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
