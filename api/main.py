"""
FastAPI main application for the Books API.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.auth import verify_token
from api.config import config
from api.database import BookRepository
from api.exceptions import SERVER_ERROR_MESSAGE, BookAPIError, NotFound, ServerError
from api.models import (
    BookListResponse, DeleteResponse, ErrorResponse,
    HealthResponse, TokenTestResponse, format_books
)
from api.pool import PostgresPool
from api.validation import parse_rating, parse_year_range
from utilities.logger import bind_request_context, clear_request_context, setup_logging

# Setup logging
logger = structlog.get_logger(__name__)

NO_BOOKS_MESSAGE = "No books found with that rating."
DELETED_MESSAGE = "Books successfully deleted"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    logger.info("Starting Books API")

    pool = PostgresPool(
        config.database_url,
        min_size=config.db_pool_min_size,
        max_size=config.db_pool_max_size
    )
    try:
        await pool.open()
        app.state.book_repository = BookRepository(pool)
    except Exception as e:
        # Serve /health as degraded; books routes answer 500 until restart
        logger.error("Database unavailable at startup", error=str(e))
        app.state.book_repository = None

    yield

    # Shutdown
    logger.info("Shutting down Books API")
    app.state.book_repository = None
    await pool.close()


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description="""
    REST API over the books catalogue.

    ## Endpoints

    * **GET /books/get_by_rating/{rating}**: books whose average rating rounds down to `rating` (1-5)
    * **DELETE /books/delete_by_range/{min}/{max}**: delete books published between `min` and `max`
    * **GET /jwt_test**: checks a bearer token

    Every error body has the shape `{"message": "..."}`.
    """,
    version=config.api_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Bind request id, method and path to every log event of the request."""
    request_id = bind_request_context(
        method=request.method,
        path=request.url.path,
        request_id=request.headers.get("X-Request-ID"),
    )
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        clear_request_context()


# Exception handlers
@app.exception_handler(BookAPIError)
async def book_api_exception_handler(request: Request, exc: BookAPIError):
    """Handle errors raised by validation, lookups and the database layer."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Request failed", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=exc.message).dict()
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(message=str(exc.detail)).dict(),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(message=SERVER_ERROR_MESSAGE).dict()
    )


def get_book_repository(request: Request) -> BookRepository:
    """Resolve the repository created at startup."""
    repository = getattr(request.app.state, "book_repository", None)
    if repository is None:
        logger.error("Database service not available")
        raise ServerError()
    return repository


async def _get_by_rating(raw_rating: Optional[str], repository: BookRepository) -> BookListResponse:
    rating = parse_rating(raw_rating)
    try:
        rows = await repository.get_by_rating(rating)
    except Exception as e:
        raise ServerError() from e

    if not rows:
        raise NotFound(NO_BOOKS_MESSAGE)
    return BookListResponse(books=format_books(rows))


async def _delete_by_range(
    raw_min: Optional[str],
    raw_max: Optional[str],
    repository: BookRepository
) -> DeleteResponse:
    min_year, max_year = parse_year_range(raw_min, raw_max)
    try:
        deleted = await repository.delete_by_range(min_year, max_year)
    except Exception as e:
        raise ServerError() from e

    # Zero deletions is still a success
    return DeleteResponse(message=DELETED_MESSAGE, deletedCount=deleted)


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    repository = getattr(request.app.state, "book_repository", None)
    db_status = "unavailable"
    if repository is not None:
        health_info = await repository.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.utcnow(),
        version=config.api_version,
        database_status=db_status
    )


# Books endpoints
@app.get(
    "/books/get_by_rating/{rating}",
    response_model=BookListResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Books"]
)
async def get_by_rating(
    rating: str,
    repository: BookRepository = Depends(get_book_repository)
):
    """
    Get books whose average rating, rounded down, equals the given rating.

    - **rating**: Integer between 1 and 5 inclusive
    """
    return await _get_by_rating(rating, repository)


@app.get(
    "/books/get_by_rating",
    response_model=BookListResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Books"]
)
async def get_by_rating_query(
    rating: Optional[str] = None,
    repository: BookRepository = Depends(get_book_repository)
):
    """Same as the path form, with ``rating`` taken from the query string."""
    return await _get_by_rating(rating, repository)


@app.delete(
    "/books/delete_by_range/{min_year}/{max_year}",
    response_model=DeleteResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Books"]
)
async def delete_by_range(
    min_year: str,
    max_year: str,
    repository: BookRepository = Depends(get_book_repository)
):
    """
    Delete books published between two years, both inclusive.

    - **min**: Earliest publication year
    - **max**: Latest publication year, not below min
    """
    return await _delete_by_range(min_year, max_year, repository)


@app.delete(
    "/books/delete_by_range",
    response_model=DeleteResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Books"]
)
async def delete_by_range_query(
    min_year: Optional[str] = Query(None, alias="min"),
    max_year: Optional[str] = Query(None, alias="max"),
    repository: BookRepository = Depends(get_book_repository)
):
    """Same as the path form, with ``min``/``max`` taken from the query string."""
    return await _delete_by_range(min_year, max_year, repository)


# Token test endpoint
@app.get("/jwt_test", response_model=TokenTestResponse, tags=["Auth"])
async def jwt_test(claims: Dict[str, Any] = Depends(verify_token)):
    """Confirm that the supplied bearer token verifies."""
    return TokenTestResponse(message="Your token is valid", claims=claims)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
