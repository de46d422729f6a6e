from __future__ import annotations

from typing import Awaitable, List

import asyncpg

from tablecms.config import settings
from tablecms.sanity_checks.checks.check_db import check_target_db
from tablecms.sanity_checks.checks.check_migrations import check_migrations
from tablecms.sanity_checks.result import SanityCheckResult
from tablecms.smart_logger import SmartLogger


def _startup_checks(pool: asyncpg.Pool) -> List[Awaitable[SanityCheckResult]]:
    checks = [check_target_db(pool)]
    if settings.run_migrations:
        checks.append(check_migrations(pool))
    return checks


async def run_startup_sanity_checks_or_raise(pool: asyncpg.Pool) -> List[SanityCheckResult]:
    """
    Run startup sanity checks in order (fail-fast).

    The DB check always runs; the migrations check only when migrations are
    applied at startup.

    Raises:
        RuntimeError: if any check fails.
    """
    results: List[SanityCheckResult] = []
    for check in _startup_checks(pool):
        try:
            result = await check
        except Exception as exc:
            result = SanityCheckResult.failure(
                "sanity_check_internal_error",
                "A sanity check raised unexpectedly",
                exc,
            )
        results.append(result)
        SmartLogger.log(
            "INFO" if result.ok else "ERROR",
            f"startup.sanity.{result.name}.{'ok' if result.ok else 'fail'}",
            category="startup.sanity",
            params=result.to_log_params(),
            max_inline_chars=0,
        )

    failed = [r.name for r in results if not r.ok]
    if failed:
        SmartLogger.log(
            "CRITICAL",
            "startup.sanity.failed",
            category="startup.sanity",
            params={"failed": failed},
            max_inline_chars=0,
        )
        raise RuntimeError(f"Startup sanity checks failed: {', '.join(failed)}. See logs for details.")

    SmartLogger.log("INFO", "startup.sanity.passed", category="startup.sanity")
    return results
