"""
Main FastAPI application for the Matchday Predictions API.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session
from prometheus_fastapi_instrumentator import Instrumentator

from matchday.core.config import settings
from matchday.core.database import get_db
from matchday.core.errors import MatchdayError
from matchday.core.logging import configure_logging, get_logger
from matchday.core.middleware import CorrelationIdMiddleware
from matchday.core.rate_limit import limiter
from matchday.api.routes import football_matches, popular_matches, predictions
from matchday.services.circuit_breaker import get_all_breaker_states

configure_logging(
    level=settings.LOG_LEVEL,
    json_output=settings.LOG_JSON
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")
    # Tables are created by scripts/init_database.py, not at start-up
    yield
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Football fixtures, user predictions and settlement for the Matchday social network",
    lifespan=lifespan
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Prometheus metrics must be instrumented before routes are added
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(football_matches.router, prefix="/api")
app.include_router(popular_matches.router, prefix="/api")
app.include_router(predictions.router, prefix="/api")


@app.get("/health")
@limiter.limit("120/minute")  # Higher limit for health checks
async def health_check(request: Request, db: Session = Depends(get_db)):
    """Health check with database connectivity and provider circuit breaker states."""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "components": {
            "circuit_breakers": get_all_breaker_states(),
        }
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["components"]["database"] = {"status": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["components"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=health_status)


# Exception handlers
@app.exception_handler(MatchdayError)
async def matchday_error_handler(request: Request, exc: MatchdayError):
    """Pipeline failures become 500 responses tagged with the failing step."""
    logger.error(
        f"{request.method} {request.url.path} failed at step '{exc.step}': {exc.message}",
        extra={"step": exc.step, "details": exc.details},
    )
    return JSONResponse(status_code=500, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed request fields are client errors (400)."""
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "matchday.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
