"""
Errors raised while fetching and normalizing Goalserve feeds.
"""


class FeedError(Exception):
    """Base class for feed ingestion errors."""


class FetchError(FeedError):
    """A feed window could not be fetched (network, HTTP status or envelope)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(FetchError):
    """The response body is not a JSON object with a ``scores`` envelope."""


class InvalidRecord(FeedError):
    """A single upstream match cannot be normalized and is skipped."""

    def __init__(self, message: str, match_id: str | None = None):
        super().__init__(message)
        self.match_id = match_id


class InvalidSchedule(InvalidRecord):
    """A match's date/time could not be parsed by any known format."""
