"""
Database service layer for the FastAPI application.
"""

from typing import Any, Dict, List

import structlog

from api.pool import ConnectionPool

logger = structlog.get_logger(__name__)

GET_BY_RATING_SQL = "SELECT * FROM books WHERE FLOOR(rating_avg) = %s"
DELETE_BY_RANGE_SQL = (
    "DELETE FROM books WHERE publication_year >= %s AND publication_year <= %s"
)
HEALTH_CHECK_SQL = "SELECT 1"


class BookRepository:
    """Query executor for the ``books`` table."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    async def get_by_rating(self, rating: int) -> List[Dict[str, Any]]:
        """
        Get books whose average rating rounds down to ``rating``.

        Args:
            rating: Validated rating between 1 and 5

        Returns:
            Matching rows, possibly empty
        """
        try:
            result = await self.pool.query(GET_BY_RATING_SQL, [rating])
            logger.debug("Books fetched by rating", rating=rating, count=len(result.rows))
            return result.rows
        except Exception as e:
            logger.error("Failed to get books by rating", rating=rating, error=str(e))
            raise

    async def delete_by_range(self, min_year: int, max_year: int) -> int:
        """
        Delete books published between ``min_year`` and ``max_year`` inclusive.

        Returns:
            Number of rows removed
        """
        try:
            result = await self.pool.query(DELETE_BY_RANGE_SQL, [min_year, max_year])
            logger.info("Books deleted by publication range",
                        min_year=min_year, max_year=max_year, deleted=result.row_count)
            return result.row_count
        except Exception as e:
            logger.error("Failed to delete books by range",
                         min_year=min_year, max_year=max_year, error=str(e))
            raise

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.pool.query(HEALTH_CHECK_SQL)
            return {"status": "healthy"}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
