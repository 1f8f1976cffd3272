"""
BTO Allocation Service - Main Application
"""
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import text

from .api import applications, enquiries, projects
from .core.config import settings
from .core.database import engine
from .core.correlation import CorrelationIdMiddleware, CORRELATION_HEADER
from .core.errors import problem_response
from .core.logging_config import setup_logging
from .domain.results import PersistenceError

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

SERVICE_VERSION = "0.1.0"


def check_database() -> str:
    """Run a trivial query; returns "connected" or the failure text"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "connected"
    except Exception as e:
        return f"disconnected: {e}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    startup = {"correlation_id": "startup"}
    logger.info(f"{settings.API_TITLE} {SERVICE_VERSION} starting ({settings.ENVIRONMENT})", extra=startup)
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}", extra=startup)
    logger.info(f"Application windows use UTC{settings.TIMEZONE_OFFSET_HOURS:+g}", extra=startup)

    database = check_database()
    if database == "connected":
        logger.info("Database connection verified", extra=startup)
    else:
        logger.error(f"Database connection failed: {database}", extra=startup)

    yield
    logger.info(f"{settings.API_TITLE} shutting down", extra={"correlation_id": "shutdown"})


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.ENABLE_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_REDOC else None,
)


def custom_openapi():
    """OpenAPI schema with the bearer scheme applied to every API route"""
    if app.openapi_schema:
        return app.openapi_schema

    schema = get_openapi(
        title=settings.API_TITLE,
        version=SERVICE_VERSION,
        description=settings.API_DESCRIPTION,
        routes=app.routes,
    )
    schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "JWT with `sub` (NRIC) and `role` (applicant, officer, manager) claims",
        }
    }

    api_prefix = f"/api/{settings.API_VERSION}/"
    for path, operations in schema["paths"].items():
        if not path.startswith(api_prefix):
            continue
        for operation in operations.values():
            operation["security"] = [{"BearerAuth": []}]

    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters as problem details"""
    return problem_response(
        request=request,
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="VALIDATION_ERROR",
        title="Validation Error",
        detail=[
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ],
    )


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error(f"Unhandled persistence failure on {request.url.path}: {exc}")
    return problem_response(
        request=request,
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
        code="PERSISTENCE_ERROR",
        title="Storage Unavailable",
        detail=str(exc),
    )


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_HEADER],
)

app.include_router(applications.router, tags=["Applications"])
app.include_router(projects.router, tags=["Projects"])
app.include_router(enquiries.router, tags=["Enquiries"])


@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check with DB verification

    Returns 200 if healthy, 503 if unhealthy
    """
    database = check_database()
    healthy = database == "connected"
    if not healthy:
        logger.error(f"Health check: database {database}", extra={"correlation_id": "health"})

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "environment": settings.ENVIRONMENT,
            "version": SERVICE_VERSION,
            "database": database,
        },
    )


@app.get("/", tags=["System"])
async def root():
    return {
        "service": settings.API_TITLE,
        "version": SERVICE_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/docs" if settings.ENABLE_DOCS else None,
        "health": "/health",
    }
