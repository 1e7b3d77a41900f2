"""
scorekeeper/main.py
FastAPI application for the tournament registration and eligibility engine
"""
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scorekeeper import __version__
from scorekeeper.config import settings
from scorekeeper.database import init_db, close_db
from scorekeeper.errors import APIError, ErrorCode, ErrorResponse
from scorekeeper.routes import participants, teams, editions, events

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    try:
        await init_db()
        logger.info("Database connected successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise
    logger.info(f"Feature flags: {settings.get_all_flags()}")
    yield
    await close_db()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Scorekeeper",
    description="Tournament registration and eligibility engine",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    error_details = []
    for error in exc.errors():
        error_details.append({
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "type": error.get("type")
        })

    response = ErrorResponse(
        error="Validation Error",
        message="Request body or parameters are invalid",
        code=ErrorCode.VALIDATION_ERROR,
        details={"errors": error_details}
    )
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=response.model_dump())


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    logger.warning(f"API error on {request.url.path}: {exc.code} - {exc.message}")
    return exc.to_response()


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log_id = str(uuid.uuid4())[:8]
    logger.error(f"[{log_id}] Unhandled exception on {request.url.path}: {type(exc).__name__}: {str(exc)}")

    response = ErrorResponse(
        error="Internal Error",
        message="An unexpected error occurred",
        code=ErrorCode.INTERNAL_ERROR,
        details={"log_id": log_id}
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=response.model_dump())


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "features": settings.get_all_flags(),
        "version": __version__
    }


app.include_router(participants.router, prefix="/api")
app.include_router(teams.router, prefix="/api")
app.include_router(editions.router, prefix="/api")
app.include_router(events.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on {settings.HOST}:{settings.PORT}")
    uvicorn.run(
        "scorekeeper.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower()
    )
