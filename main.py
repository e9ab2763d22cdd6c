import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.endpoints import (
    fone,
    health,
    missions,
)
from app.core.config import settings
from app.core.errors import AppError
from app.db.session import get_engine
from app.services.ledger import init_schema

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the ledger tables before serving; a failure aborts startup."""
    db_engine = get_engine()
    if db_engine is None:
        logger.warning("DATABASE_URL is missing, /api/app routes will answer with DB error")
    else:
        init_schema(db_engine)
    if not settings.fone_configured:
        logger.warning("FONE_BASE_URL / FONE_SDK_KEY are missing, /api/fone routes will fail")
    logger.info("%s backend running on port %s", settings.PROJECT_NAME, settings.PORT)
    yield


# Define the FastAPI application instance
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# every error leaves the API as {"error": "<message>"}
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    if first.get("type") == "json_invalid":
        message = "invalid JSON body"
    else:
        loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        message = f"{loc[0]} is invalid" if loc else "invalid request"
    return JSONResponse(status_code=400, content={"error": message})


# Include your API routers
g_prefix = "/api"
app.include_router(health.router, prefix=g_prefix)
app.include_router(fone.router, prefix=g_prefix + "/fone")
app.include_router(missions.router, prefix=g_prefix + "/app")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
