"""FastAPI main application"""
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager

import asyncpg
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from tablecms.config import settings
from tablecms.core.errors import AppError, BadRequestError, from_db_error
from tablecms.core.migrations import run_migrations
from tablecms.deps import create_db_pool
from tablecms.routers import rows, tables
from tablecms.sanity_checks.runner import run_startup_sanity_checks_or_raise
from tablecms.smart_logger import SmartLogger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    pool = await create_db_pool()
    try:
        if settings.startup_sanity_checks:
            await run_startup_sanity_checks_or_raise(pool)

        if settings.run_migrations:
            async with pool.acquire() as conn:
                applied = await run_migrations(conn)
            SmartLogger.log(
                "INFO",
                "main.lifespan.migrations",
                category="main.lifespan.start",
                params={"applied": applied},
            )
    except BaseException:
        await pool.close()
        raise

    app.state.pool = pool
    SmartLogger.log(
        "INFO",
        "LISTENING",
        category="main.lifespan.start",
        params={"host": settings.api_host, "port": settings.api_port},
    )

    yield

    # Shutdown
    app.state.pool = None
    await pool.close()
    SmartLogger.log("INFO", "main.lifespan.shutdown", category="main.lifespan.stop")


app = FastAPI(
    title="tablecms",
    description="""
    Schema-driven table and row API over PostgreSQL.

    ## Workflow
    1. Create a table: `POST /tables`
    2. Inspect it: `GET /tables/{name}`
    3. Write rows: `POST /rows`, `PATCH /rows`, `DELETE /rows`
    4. Read rows: `GET /rows`, `GET /rows/{id}`, `POST /rows/query`
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tables.router)
app.include_router(rows.router)


def _error_response(request: Request, error: AppError) -> PlainTextResponse:
    SmartLogger.log(
        "ERROR",
        f"{error.status_code} {error.kind}",
        category="http.error",
        params={"method": request.method, "path": request.url.path, "message": error.message},
    )
    return PlainTextResponse(error.message, status_code=error.status_code)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return _error_response(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return _error_response(request, BadRequestError(f"Malformed request: {details}"))


@app.exception_handler(asyncpg.PostgresError)
async def postgres_error_handler(request: Request, exc: asyncpg.PostgresError):
    return _error_response(request, from_db_error(exc))


@app.exception_handler(asyncpg.InterfaceError)
async def interface_error_handler(request: Request, exc: asyncpg.InterfaceError):
    return _error_response(request, from_db_error(exc))


@app.get("/", response_class=PlainTextResponse)
async def root():
    """Liveness"""
    return "Hello, World!"


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    pool = getattr(request.app.state, "pool", None)
    try:
        if pool is None:
            raise RuntimeError("Database pool is not initialized")
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tablecms.main:app",
        host=settings.api_host,
        port=settings.api_port,
    )
