"""
API error type rendered as the standard error envelope.
"""
from typing import Dict, Optional


class ApiError(Exception):
    """
    Error returned to API callers as
    ``{"success": false, "error": {"code": ..., "message": ...}}``.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.headers = headers or {}


class NotFoundError(ApiError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(404, "NOT_FOUND", message)
