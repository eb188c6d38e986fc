"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError, validator

from api.exceptions import StructuredMappingError


class StoredBook(BaseModel):
    """Row schema of the ``books`` table."""
    isbn13: int = Field(..., description="ISBN-13, primary identity")
    authors: str = Field(..., description="Comma separated author names")
    title: str = Field(..., description="Book title")
    original_title: Optional[str] = Field(..., description="Title of the original edition")
    publication_year: int = Field(..., description="Original publication year")
    rating_avg: float = Field(..., ge=0, le=5, description="Average rating")
    rating_count: int = Field(..., ge=0, description="Number of ratings")
    rating_1_star: int = Field(..., ge=0)
    rating_2_star: int = Field(..., ge=0)
    rating_3_star: int = Field(..., ge=0)
    rating_4_star: int = Field(..., ge=0)
    rating_5_star: int = Field(..., ge=0)
    image_url: str = Field(..., description="Large cover image URL")
    image_small_url: str = Field(..., description="Small cover image URL")

    @validator(
        "isbn13", "publication_year", "rating_avg", "rating_count",
        "rating_1_star", "rating_2_star", "rating_3_star", "rating_4_star", "rating_5_star",
        pre=True
    )
    def reject_text_numbers(cls, v):
        """Numeric columns must come back from the driver as numbers."""
        if isinstance(v, (str, bytes)):
            raise ValueError("expected a numeric value, got text")
        return v


class Ratings(BaseModel):
    """Rating summary of a book."""
    average: float = Field(..., description="Average rating")
    count: int = Field(..., description="Number of ratings")
    rating_1: int
    rating_2: int
    rating_3: int
    rating_4: int
    rating_5: int


class Icons(BaseModel):
    """Cover image links."""
    large: str
    small: str


class Book(BaseModel):
    """Public view of a book."""
    isbn13: int = Field(..., description="ISBN-13")
    authors: str = Field(..., description="Authors")
    publication: int = Field(..., description="Publication year")
    original_title: Optional[str] = Field(None, description="Original title")
    title: str = Field(..., description="Title")
    ratings: Ratings
    icons: Icons


class BookListResponse(BaseModel):
    """Response model for a list of books."""
    books: List[Book] = Field(..., description="List of books")


class DeleteResponse(BaseModel):
    """Response model for range deletes."""
    message: str = Field(..., description="Confirmation message")
    deletedCount: int = Field(..., ge=0, description="Number of books deleted")


class ErrorResponse(BaseModel):
    """Error response model."""
    message: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")


class TokenTestResponse(BaseModel):
    """Response of the token-gated test route."""
    message: str
    claims: Dict[str, Any] = Field(default_factory=dict)


def format_book(row: Dict[str, Any]) -> Book:
    """
    Reshape a stored row into the public Book view.

    Args:
        row: Column -> value mapping from the ``books`` table

    Returns:
        Book with nested ratings and icons

    Raises:
        StructuredMappingError: If a field is missing or has the wrong type
    """
    try:
        stored = StoredBook(**row)
    except ValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
        raise StructuredMappingError(fields, detail=str(e)) from e

    return Book(
        isbn13=stored.isbn13,
        authors=stored.authors,
        publication=stored.publication_year,
        original_title=stored.original_title,
        title=stored.title,
        ratings=Ratings(
            average=stored.rating_avg,
            count=stored.rating_count,
            rating_1=stored.rating_1_star,
            rating_2=stored.rating_2_star,
            rating_3=stored.rating_3_star,
            rating_4=stored.rating_4_star,
            rating_5=stored.rating_5_star,
        ),
        icons=Icons(
            large=stored.image_url,
            small=stored.image_small_url,
        ),
    )


def format_books(rows: Iterable[Dict[str, Any]]) -> List[Book]:
    """Format every row; the first bad row aborts the whole batch."""
    return [format_book(row) for row in rows]
