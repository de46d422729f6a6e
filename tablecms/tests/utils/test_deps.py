# python -m pytest tablecms/tests/utils/test_deps.py -v

import pytest

from tablecms import deps
from tablecms.config import settings


class TestCreateDbPool:
    """Pool creation"""

    @pytest.mark.asyncio
    async def test_search_path_is_the_configured_schema(self, monkeypatch):
        captured = {}

        async def fake_create_pool(**kwargs):
            captured.update(kwargs)
            return "pool"

        monkeypatch.setattr(deps.asyncpg, "create_pool", fake_create_pool)
        monkeypatch.setattr(settings, "db_schema", "cms")

        assert await deps.create_db_pool() == "pool"
        assert captured["server_settings"] == {"search_path": "cms"}
        assert captured["dsn"] == settings.database_url
