"""
Sales & Inventory API - Main Application.

FastAPI application with CORS enabled for frontend communication. Domain errors
are translated to JSON bodies of the form {error, message, code}:

- ValidationError   -> 400
- NotFoundError     -> 404
- BusinessRuleError -> 422 (InsufficientStockError included)
- DatabaseError     -> 500
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from config.settings import get_settings
from domain.errors import (
    ApplicationError,
    BusinessRuleError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Sales & Inventory API",
    description="REST API for multi-tenant sales, payments and stock control",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Allow all origins for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _status_for(exc: ApplicationError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, BusinessRuleError):
        return 422
    if isinstance(exc, DatabaseError):
        return 500
    return 400


def _error_body(error: str, message: str, code: str) -> dict:
    return {"error": error, "message": message, "code": code}


@app.exception_handler(ApplicationError)
async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(
            "Request failed with a database error",
            extra={"path": request.url.path, "error_message": exc.message},
        )
    return JSONResponse(
        status_code=status_code,
        content=_error_body(type(exc).__name__, exc.message, exc.code),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_error_body("ValidationError", str(exc.errors()), ValidationError.code),
    )


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status, version and configured backend.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "sales-inventory-api",
        "backend": get_settings().backend,
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Sales & Inventory API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import catalog, sales, stock  # noqa: E402

app.include_router(catalog.router, prefix="/api/v1", tags=["Catalog"])
app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
app.include_router(stock.router, prefix="/api/v1", tags=["Stock"])
