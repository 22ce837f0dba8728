"""
Main FastAPI application entrypoint.
"""
import logging
import sys
from importlib.metadata import PackageNotFoundError, version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from streamflix.api.routes.movies import router as movies_router
from streamflix.api.routes.ratings import router as ratings_router
from streamflix.api.routes.subscriptions import router as subscriptions_router
from streamflix.api.routes.tables import router as tables_router
from streamflix.api.routes.users import router as users_router
from streamflix.core.config import settings
from streamflix.core.exceptions import StreamflixError
from streamflix.db.init_db import init_db
from streamflix.db.session import create_tables, engine

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Administration API for the StreamFlix users, subscriptions, movies and ratings database",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(users_router, prefix=settings.API_V1_PREFIX, tags=["users"])
app.include_router(subscriptions_router, prefix=settings.API_V1_PREFIX, tags=["subscriptions"])
app.include_router(movies_router, prefix=settings.API_V1_PREFIX, tags=["movies"])
app.include_router(ratings_router, prefix=settings.API_V1_PREFIX, tags=["ratings"])
app.include_router(tables_router, prefix=settings.API_V1_PREFIX, tags=["tables"])


@app.exception_handler(StreamflixError)
async def streamflix_error_handler(request: Request, exc: StreamflixError):
    """Map service errors to HTTP responses."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
def startup_event():
    """Initialize application on startup."""
    logger.info("Starting StreamFlix Administration API...")
    create_tables()
    init_db()


@app.get("/health", tags=["health"])
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "message": "StreamFlix Administration API is running"}


@app.get(f"{settings.API_V1_PREFIX}/diagnostics", tags=["diagnostics"])
def diagnostics():
    """Check database connectivity and report dependency versions."""
    report = {
        "status": "ok",
        "details": {},
        "environment": {
            "python_version": sys.version,
            "database_url_set": bool(settings.DATABASE_URL),
            "debug_mode": settings.DEBUG,
            "pool_size": settings.DB_POOL_SIZE,
        },
        "dependencies": {},
    }

    for package in ["fastapi", "uvicorn", "sqlalchemy", "pydantic", "pydantic-settings", "email-validator"]:
        try:
            report["dependencies"][package] = {"installed": True, "version": version(package)}
        except PackageNotFoundError:
            report["dependencies"][package] = {"installed": False, "version": None}
            report["status"] = "warning"

    try:
        with engine.connect() as conn:
            database_ok = conn.execute(text("SELECT 1")).scalar() == 1
        report["details"]["database"] = {
            "connected": database_ok,
            "type": engine.dialect.name,
        }
    except Exception as e:
        logger.error(f"Database check failed: {str(e)}")
        report["details"]["database"] = {"connected": False, "error": str(e)}
        report["status"] = "warning"

    return report


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
