# python -m pytest tablecms/tests/routers/test_tables_router.py -v

"""Tests for the /tables endpoints."""

import pytest
from asyncpg import exceptions as pg_exc
from fastapi.testclient import TestClient

from tablecms.main import app
from tablecms.tests.fakes import FakeConnection, FakeResult, override_connection


def _info(table, name, data_type, **extra):
    row = {
        "table_name": table,
        "column_name": name,
        "column_default": None,
        "data_type": data_type,
        "is_nullable": "YES",
        "character_maximum_length": None,
    }
    row.update(extra)
    return row


@pytest.fixture
def conn():
    conn = FakeConnection()
    undo = override_connection(app, conn)
    yield conn
    undo()


@pytest.fixture
def client():
    return TestClient(app)


class TestCreateTable:
    """POST /tables"""

    def test_creates_and_returns_columns(self, conn, client):
        conn.on(
            "ordinal_position",
            FakeResult(
                rows=[
                    _info(
                        "t",
                        "id",
                        "uuid",
                        column_default="gen_random_uuid()",
                        is_nullable="NO",
                    )
                ]
            ),
        )

        response = client.post(
            "/tables",
            json={
                "name": "t",
                "columns": [
                    {
                        "name": "id",
                        "data_type": "uuid",
                        "is_nullable": False,
                        "is_primary_key": True,
                        "is_unique": True,
                        "default": "gen_random_uuid()",
                    }
                ],
            },
        )

        assert response.status_code == 201
        assert response.json() == [
            _info("t", "id", "uuid", column_default="gen_random_uuid()", is_nullable="NO")
        ]
        assert (
            "CREATE TABLE IF NOT EXISTS t (id uuid NOT NULL DEFAULT gen_random_uuid() PRIMARY KEY)"
            in conn.sql_calls("execute")
        )
        assert conn.transactions == ["begin", "commit"]

    def test_existing_table_is_conflict(self, conn, client):
        conn.on("information_schema.tables", FakeResult(value=True))

        response = client.post(
            "/tables",
            json={"name": "t", "columns": [{"name": "id", "data_type": "int"}]},
        )

        assert response.status_code == 409
        assert response.text == 'Table "t" already exists.'
        assert not any(sql.startswith("CREATE TABLE") for sql in conn.sql_calls("execute"))
        assert conn.transactions == ["begin", "rollback"]

    def test_mixed_case_name_conflicts_with_existing_lower_case_table(self, conn, client):
        conn.on("information_schema.tables", FakeResult(value=True))

        response = client.post(
            "/tables",
            json={"name": "Users", "columns": [{"name": "id", "data_type": "int"}]},
        )

        assert response.status_code == 409
        assert response.text == 'Table "users" already exists.'
        [exists_args] = [args for kind, sql, args in conn.calls if kind == "fetchval"]
        assert exists_args == ("public", "users")
        assert not any(sql.startswith("CREATE TABLE") for sql in conn.sql_calls("execute"))

    def test_mixed_case_name_is_created_folded(self, conn, client):
        response = client.post(
            "/tables",
            json={"name": "Users", "columns": [{"name": "Email", "data_type": "text"}]},
        )

        assert response.status_code == 201
        assert "CREATE TABLE IF NOT EXISTS users (email text)" in conn.sql_calls("execute")

    def test_lock_is_taken_first_inside_the_transaction(self, conn, client):
        response = client.post(
            "/tables",
            json={"name": "Users", "columns": [{"name": "id", "data_type": "int"}]},
        )

        assert response.status_code == 201
        [calls] = conn.transaction_calls
        assert [kind for kind, _, _ in calls] == ["execute", "fetchval", "execute", "fetch"]
        lock_kind, lock_sql, lock_args = calls[0]
        assert lock_sql == "SELECT pg_advisory_xact_lock(hashtext($1))"
        assert lock_args == ("public.users",)
        assert "information_schema.tables" in calls[1][1]
        assert calls[2][1].startswith("CREATE TABLE IF NOT EXISTS users")
        assert all(call in calls for call in conn.calls)

    def test_lock_is_held_when_table_exists(self, conn, client):
        conn.on("information_schema.tables", FakeResult(value=True))

        client.post("/tables", json={"name": "users", "columns": [{"name": "id", "data_type": "int"}]})

        [calls] = conn.transaction_calls
        assert [(kind, args) for kind, _, args in calls] == [
            ("execute", ("public.users",)),
            ("fetchval", ("public", "users")),
        ]

    def test_invalid_name_is_rejected_before_any_sql(self, conn, client):
        response = client.post(
            "/tables",
            json={"name": "t; DROP TABLE users", "columns": [{"name": "id", "data_type": "int"}]},
        )
        assert response.status_code == 400
        assert conn.calls == []

    def test_no_columns_is_malformed(self, conn, client):
        response = client.post("/tables", json={"name": "t", "columns": []})
        assert response.status_code == 400
        assert response.text.startswith("Malformed request")

    def test_missing_body_field(self, conn, client):
        response = client.post("/tables", json={"columns": [{"name": "id", "data_type": "int"}]})
        assert response.status_code == 400


class TestReadTables:
    """GET /tables and GET /tables/{name}"""

    def test_list(self, conn, client):
        conn.on("table_name <> $2", FakeResult(rows=[_info("posts", "id", "integer")]))
        response = client.get("/tables")
        assert response.status_code == 200
        assert response.json() == [_info("posts", "id", "integer")]

    def test_describe(self, conn, client):
        conn.on(
            "primary_key",
            FakeResult(rows=[_info("posts", "id", "integer", is_nullable="NO", is_primary_key=True)]),
        )
        response = client.get("/tables/posts")
        assert response.status_code == 200
        assert response.json()[0]["is_primary_key"] is True

    def test_describe_unknown(self, conn, client):
        response = client.get("/tables/missing")
        assert response.status_code == 404


class TestAlterTable:
    """PATCH /tables/{name}"""

    def test_add_and_drop(self, conn, client):
        response = client.patch(
            "/tables/posts",
            json={
                "name": "posts",
                "columns": [
                    {"name": "body", "data_type": "text", "state": "added"},
                    {"name": "legacy", "state": "removed"},
                    {"name": "title", "data_type": "text", "state": "unchanged"},
                ],
            },
        )
        assert response.status_code == 200
        assert conn.sql_calls("execute") == [
            "ALTER TABLE posts ADD COLUMN IF NOT EXISTS body text, DROP COLUMN IF EXISTS legacy"
        ]

    def test_put_is_accepted(self, conn, client):
        response = client.put(
            "/tables/posts",
            json={"columns": [{"name": "body", "data_type": "text", "state": "added"}]},
        )
        assert response.status_code == 200

    def test_nothing_to_change(self, conn, client):
        response = client.patch(
            "/tables/posts",
            json={"columns": [{"name": "title", "data_type": "text", "state": "modified"}]},
        )
        assert response.status_code == 200
        assert conn.calls == []

    def test_unknown_state(self, conn, client):
        response = client.patch(
            "/tables/posts", json={"columns": [{"name": "title", "state": "renamed"}]}
        )
        assert response.status_code == 400

    def test_missing_table(self, conn, client):
        conn.on("ALTER TABLE", FakeResult(error=pg_exc.UndefinedTableError('relation "posts" does not exist')))
        response = client.patch(
            "/tables/posts",
            json={"columns": [{"name": "body", "data_type": "text", "state": "added"}]},
        )
        assert response.status_code == 404


class TestDropTables:
    """DELETE /tables/{name} and DELETE /tables?names="""

    def test_drop_one(self, conn, client):
        response = client.delete("/tables/posts")
        assert response.status_code == 204
        assert conn.sql_calls("execute") == ["DROP TABLE IF EXISTS posts"]

    def test_drop_many(self, conn, client):
        response = client.delete("/tables", params={"names": "a,b"})
        assert response.status_code == 204
        assert conn.sql_calls("execute") == ["DROP TABLE IF EXISTS a, b CASCADE"]

    def test_drop_many_rejects_bad_name(self, conn, client):
        response = client.delete("/tables", params={"names": "a,b;DROP"})
        assert response.status_code == 400
        assert conn.calls == []


class TestAppRoutes:
    """Root and health routes"""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "Hello, World!"

    def test_health_without_pool(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "unhealthy"
