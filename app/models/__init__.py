"""
Models Module

Usage:
    from app.models import SoccerMatch, BasketballMatch, ApiKey
"""
from app.models.models import (
    Base,
    SoccerMatch,
    BasketballMatch,
    ApiKey,
)

__all__ = [
    "Base",
    "SoccerMatch",
    "BasketballMatch",
    "ApiKey",
]
