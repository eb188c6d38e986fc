"""
Pytest configuration and shared fixtures.
"""

import math
from typing import Any, Dict, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from api.database import (
    BookRepository, DELETE_BY_RANGE_SQL, GET_BY_RATING_SQL, HEALTH_CHECK_SQL
)
from api.main import app, get_book_repository
from api.pool import QueryResult


class InMemoryPool:
    """
    Connection pool double over a list of rows.

    Understands the statements issued by BookRepository. Each statement runs
    without yielding to the event loop, so it is atomic like a real one.
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows = [dict(row) for row in rows or []]
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None
        self.closed = False

    async def query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        self.calls.append((sql, list(params)))
        if self.error is not None:
            raise self.error

        if sql == GET_BY_RATING_SQL:
            rating = params[0]
            rows = [dict(row) for row in self.rows if math.floor(row["rating_avg"]) == rating]
            return QueryResult(rows=rows, row_count=len(rows))

        if sql == DELETE_BY_RANGE_SQL:
            low, high = params
            kept = [row for row in self.rows if not low <= row["publication_year"] <= high]
            deleted = len(self.rows) - len(kept)
            self.rows = kept
            return QueryResult(rows=[], row_count=deleted)

        if sql == HEALTH_CHECK_SQL:
            return QueryResult(rows=[{"?column?": 1}], row_count=1)

        raise ValueError(f"Unexpected statement: {sql}")

    async def close(self) -> None:
        self.closed = True


def make_book_row(**overrides) -> Dict[str, Any]:
    """Build a stored book row with sensible defaults."""
    row = {
        "isbn13": 9780439023480,
        "authors": "Suzanne Collins",
        "title": "The Hunger Games (The Hunger Games, #1)",
        "original_title": "The Hunger Games",
        "publication_year": 2008,
        "rating_avg": 4.34,
        "rating_count": 4780653,
        "rating_1_star": 66715,
        "rating_2_star": 127936,
        "rating_3_star": 560092,
        "rating_4_star": 1481305,
        "rating_5_star": 2706317,
        "image_url": "https://images.gr-assets.com/books/1447303603m/2767052.jpg",
        "image_small_url": "https://images.gr-assets.com/books/1447303603s/2767052.jpg",
    }
    row.update(overrides)
    return row


@pytest.fixture
def sample_rows():
    """A small catalogue spread over ratings and publication years."""
    return [
        make_book_row(),
        make_book_row(isbn13=9780439554930, title="Harry Potter and the Sorcerer's Stone",
                      authors="J.K. Rowling, Mary GrandPré", publication_year=1997, rating_avg=4.44),
        make_book_row(isbn13=9780316015840, title="Twilight (Twilight, #1)",
                      authors="Stephenie Meyer", publication_year=2005, rating_avg=3.57),
        make_book_row(isbn13=9780061120080, title="To Kill a Mockingbird",
                      authors="Harper Lee", publication_year=1960, rating_avg=4.25),
        make_book_row(isbn13=9780743273560, title="The Great Gatsby",
                      authors="F. Scott Fitzgerald", publication_year=1925, rating_avg=3.89,
                      original_title=None),
        make_book_row(isbn13=9780525478810, title="The Fault in Our Stars",
                      authors="John Green", publication_year=2012, rating_avg=4.26),
        make_book_row(isbn13=9780375831000, title="The Book Thief",
                      authors="Markus Zusak", publication_year=1999, rating_avg=4.36),
        make_book_row(isbn13=9780142000670, title="Of Mice and Men",
                      authors="John Steinbeck", publication_year=1937, rating_avg=2.87),
    ]


@pytest.fixture
def memory_pool(sample_rows):
    """In-memory pool loaded with the sample catalogue."""
    return InMemoryPool(sample_rows)


@pytest.fixture
def repository(memory_pool):
    """Repository over the in-memory pool."""
    return BookRepository(memory_pool)


@pytest.fixture
def client(repository):
    """Test client with the repository dependency swapped for the in-memory one."""
    app.dependency_overrides[get_book_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.pop(get_book_repository, None)


@pytest.fixture
def book_row_factory():
    """Factory for single stored rows."""
    return make_book_row
