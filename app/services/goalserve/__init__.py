"""Goalserve feed client and normalizer."""
from app.services.goalserve.client import FeedWindow, GoalserveClient, RequestPacer
from app.services.goalserve.exceptions import (
    FeedError,
    FetchError,
    InvalidRecord,
    InvalidSchedule,
    MalformedResponse,
)
from app.services.goalserve.normalizer import as_list, normalize

__all__ = [
    "FeedWindow",
    "GoalserveClient",
    "RequestPacer",
    "FeedError",
    "FetchError",
    "InvalidRecord",
    "InvalidSchedule",
    "MalformedResponse",
    "as_list",
    "normalize",
]
