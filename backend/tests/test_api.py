"""HTTP surface tests using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    return TestClient(app)


IR = {
    "tables": [{"id": "t1", "name": "users"}],
    "selectedColumns": [{"tableId": "t1", "columnName": "id"}],
    "filters": {
        "kind": "group",
        "operator": "AND",
        "children": [
            {"kind": "condition", "tableId": "t1", "column": "status", "operator": "=", "value": "active"},
        ],
    },
    "limit": 10,
}


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestSqlToIR:
    """POST /api/sql-to-ir"""

    def test_returns_camel_case_ir(self, client):
        response = client.post("/api/sql-to-ir", json={"sql": "SELECT u.id FROM users u LIMIT 5"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        ir = body["ir"]
        assert ir["tables"][0]["name"] == "users"
        assert ir["selectedColumns"][0]["tableId"] == ir["tables"][0]["id"]
        assert ir["statementType"] == "SELECT"
        assert ir["limit"] == 5

    def test_empty_sql_rejected(self, client):
        response = client.post("/api/sql-to-ir", json={"sql": "   "})
        assert response.status_code == 400
        assert response.json()["detail"] == "SQL query is required"


class TestIRToSql:
    """POST /api/ir-to-sql"""

    def test_generates_sql(self, client):
        response = client.post("/api/ir-to-sql", json={"ir": IR})
        assert response.json() == {
            "success": True,
            "sql": "SELECT users.id\nFROM users\nWHERE users.status = 'active'\nLIMIT 10",
            "error": None,
        }

    def test_sqlserver_dialect(self, client):
        response = client.post("/api/ir-to-sql", json={"ir": IR, "dialect": "sqlserver"})
        assert response.json()["sql"].endswith("OFFSET 0 ROWS FETCH NEXT 10 ROWS ONLY")

    def test_unknown_dialect(self, client):
        response = client.post("/api/ir-to-sql", json={"ir": IR, "dialect": "oracle"})
        assert response.status_code == 400

    def test_no_tables(self, client):
        body = client.post("/api/ir-to-sql", json={"ir": {"tables": []}}).json()
        assert body["success"] is False
        assert "No tables specified in query" in body["error"]

    def test_malformed_ir(self, client):
        body = client.post("/api/ir-to-sql", json={"ir": {"tables": [{"id": "t1"}]}}).json()
        assert body["success"] is False
        assert body["error"].startswith("Invalid IR")


class TestValidation:
    """POST /api/validate-ir and /api/validate-sql"""

    def test_validate_ir(self, client):
        ir = dict(IR, joins=[{"id": "j1", "fromTableId": "t1", "toTableId": "t9", "conditions": []}])
        body = client.post("/api/validate-ir", json={"ir": ir}).json()
        assert body == {
            "valid": False,
            "errors": ["Join 1: Target table not found", "Join 1: No join conditions specified"],
        }

    def test_validate_ir_malformed(self, client):
        body = client.post("/api/validate-ir", json={"ir": {"limit": -1}}).json()
        assert body["valid"] is False
        assert body["errors"]

    def test_validate_sql(self, client):
        body = client.post("/api/validate-sql", json={"sql": "DELETE FROM users"}).json()
        assert body["isValid"] is True
        assert body["warnings"] == ["DELETE without WHERE clause will affect all rows. Use with caution."]

    def test_validate_sql_requires_text(self, client):
        assert client.post("/api/validate-sql", json={"sql": ""}).status_code == 400


class TestRoundTrip:
    """POST /api/round-trip"""

    def test_round_trip(self, client):
        body = client.post("/api/round-trip", json={"sql": "SELECT users.id FROM users LIMIT 3"}).json()
        assert body["lossless"] is True
        assert body["regenerated_sql"] == "SELECT users.id\nFROM users\nLIMIT 3"
