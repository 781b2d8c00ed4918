"""
Helpers shared by the sport routers.
"""
from app.core.errors import ApiError

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def parse_match_id(raw: str) -> int:
    """Parse the ``{match_id}`` path segment."""
    try:
        return int(raw)
    except ValueError:
        raise ApiError(400, "INVALID_ID", "Invalid match ID")
