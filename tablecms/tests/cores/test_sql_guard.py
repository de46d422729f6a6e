# python -m pytest tablecms/tests/cores/test_sql_guard.py -v

import pytest

from tablecms.core.errors import BadRequestError
from tablecms.core.sql_guard import MAX_IDENTIFIER_LENGTH, SQLGuard


class TestIdentifier:
    """Identifier validation"""

    @pytest.mark.parametrize("name", ["t", "_private", "posts2", "a" * MAX_IDENTIFIER_LENGTH])
    def test_accepts(self, name):
        assert SQLGuard().identifier(name) == name

    def test_folds_to_lower_case(self):
        """Unquoted names are stored lower-cased by the server"""
        assert SQLGuard().identifier("Users") == "users"
        assert SQLGuard().identifier_list("Posts,TAGS") == ["posts", "tags"]

    @pytest.mark.parametrize(
        "name",
        ["", "1abc", "a-b", "a b", "a\n", 'a"b', "a;b", "t--", "tëst", "a" * (MAX_IDENTIFIER_LENGTH + 1)],
    )
    def test_rejects(self, name):
        with pytest.raises(BadRequestError) as exc_info:
            SQLGuard().identifier(name, what="table name")
        assert exc_info.value.status_code == 400
        assert "table name" in exc_info.value.message

    def test_rejects_non_string(self):
        with pytest.raises(BadRequestError):
            SQLGuard().identifier(None)

    def test_list(self):
        assert SQLGuard().identifier_list(" a,b , c ") == ["a", "b", "c"]

    def test_list_rejects_empty(self):
        with pytest.raises(BadRequestError):
            SQLGuard().identifier_list("")


class TestDataType:
    """Data type validation"""

    @pytest.mark.parametrize(
        "data_type",
        ["uuid", "text", "varchar(255)", "boolean", "timestamptz", "jsonb", "double precision"],
    )
    def test_accepts_builtin(self, data_type):
        assert SQLGuard().data_type(data_type) == data_type

    def test_keeps_spelling_and_strips(self):
        assert SQLGuard().data_type("  VARCHAR(20) ") == "VARCHAR(20)"

    def test_accepts_user_type_name(self):
        assert SQLGuard().data_type("citext") == "citext"

    def test_accepts_user_array_type(self):
        assert SQLGuard().data_type("citext[]") == "citext[]"

    @pytest.mark.parametrize(
        "data_type",
        [
            "",
            "   ",
            "text; DROP TABLE t",
            "text -- comment",
            "text DEFAULT 'x'",
            "varchar(10",
            "int[",
            "int, evil text",
            "int primary key",
            "text not null",
            "int references users",
            "varchar(10) collate C",
            "int check (1)",
            "int, OWNER TO postgres",
            "int, DROP COLUMN x",
            "integer with time zone",
            "varchar(a)",
            "1int",
            "x" * 200,
        ],
    )
    def test_rejects(self, data_type):
        with pytest.raises(BadRequestError):
            SQLGuard().data_type(data_type)


class TestOrderDirection:
    """ORDER BY direction"""

    def test_default(self):
        assert SQLGuard().order_direction(None) == "ASC"

    def test_case_insensitive(self):
        assert SQLGuard().order_direction(" desc ") == "DESC"

    def test_rejects(self):
        with pytest.raises(BadRequestError):
            SQLGuard().order_direction("DESC; DROP TABLE t")
