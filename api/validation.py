"""
Request parameter validation for the books endpoints.
"""

import re
from typing import Optional, Tuple

from api.exceptions import InvalidParameter

RATING_REQUIRED_MESSAGE = "Rating parameter is required."
INVALID_RATING_MESSAGE = "Invalid rating parameter. Please specify a rating between 1 and 5."
INVALID_RANGE_MESSAGE = (
    "Invalid date parameters. Please specify a min and max publication year. "
    "min must be less than max."
)

MIN_RATING = 1
MAX_RATING = 5

_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")


def parse_int(raw: Optional[str]) -> Optional[int]:
    """
    Parse a request value as a base-10 integer.

    Args:
        raw: Raw parameter value as received

    Returns:
        The integer, or None when the value is missing or not an integer
    """
    if raw is None:
        return None
    value = str(raw).strip()
    if not _INTEGER_RE.match(value):
        return None
    return int(value)


def parse_rating(raw: Optional[str]) -> int:
    """
    Validate the ``rating`` parameter.

    Args:
        raw: Raw rating value

    Returns:
        Rating between 1 and 5 inclusive

    Raises:
        InvalidParameter: If the rating is missing, non-numeric or out of range
    """
    if raw is None or str(raw).strip() == "":
        raise InvalidParameter(RATING_REQUIRED_MESSAGE)

    rating = parse_int(raw)
    if rating is None or rating < MIN_RATING or rating > MAX_RATING:
        raise InvalidParameter(INVALID_RATING_MESSAGE)
    return rating


def parse_year_range(raw_min: Optional[str], raw_max: Optional[str]) -> Tuple[int, int]:
    """
    Validate the ``min``/``max`` publication year pair.

    Raises:
        InvalidParameter: If either bound is non-numeric or min > max
    """
    min_year = parse_int(raw_min)
    max_year = parse_int(raw_max)
    if min_year is None or max_year is None or min_year > max_year:
        raise InvalidParameter(INVALID_RANGE_MESSAGE)
    return min_year, max_year
