import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from forge_server.config import settings
from forge_server.errors import ForgeError
from forge_server.logging_config import setup_logging, get_logger

logger = get_logger(__name__)
from forge_server.database import AsyncSessionLocal, init_db_engine, close_db_engine
from forge_server.migration_check import ensure_migrations
from forge_server.routers import projects


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - connect/disconnect the database."""
    # Initialize logging first
    setup_logging()

    # Initialize async database engine
    try:
        await init_db_engine()
        logger.info("Database engine initialized")
    except Exception as e:
        logger.critical(f"Could not initialize database engine: {e}")
        raise

    # Verify database migrations are applied
    try:
        ensure_migrations()
    except Exception as e:
        logger.critical(f"Migration check failed: {e}")
        raise

    yield

    # Close async database engine
    try:
        await close_db_engine()
        logger.info("Database engine closed")
    except Exception as e:
        logger.error(f"Error closing database engine: {e}")


app = FastAPI(
    title="Forge API",
    version="0.1.0",
    description="Hardware project tracking with dependency and critical-path analysis",
    lifespan=lifespan,
)

# CORS
# CORS_ORIGINS env var controls allowed origins.
#   "*"              → wildcard (allow any origin, credentials disabled)
#   "http://a,https://b" → explicit origin list (credentials enabled)
_cors_origins = settings.cors_origin_list
_cors_credentials = _cors_origins != ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=_cors_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ForgeError)
async def forge_error_handler(request: Request, exc: ForgeError):
    """Render service errors with their own status and stable code."""
    logger.info(
        f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions and return proper JSON response."""
    error_detail = str(exc)
    error_type = type(exc).__name__

    # Log the full traceback
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {error_type}: {error_detail}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"{error_type}: {error_detail}",
            "type": error_type,
            "path": str(request.url.path),
        },
    )


app.include_router(projects.router, prefix="/v1/projects", tags=["projects"])


@app.get("/v1/status")
async def status():
    """Get API health status."""
    database_ok = False
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
            database_ok = True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")

    # Version info, baked in at build time, falls back to "dev"
    api_version = os.getenv("FORGE_BUILD_VERSION", "dev")

    return {
        "status": "ok" if database_ok else "degraded",
        "version": api_version,
        "database": "sqlite" if settings.is_sqlite else "postgresql",
        "database_connected": database_ok,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("forge_server.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
