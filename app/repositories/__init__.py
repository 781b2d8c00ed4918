"""
Repository layer for data access.

Usage:
    from app.repositories import SoccerMatchRepository, ApiKeyRepository

    with database.session_scope() as db:
        match = SoccerMatchRepository(db).find_by_match_id(4521337)
"""

from app.repositories.base import BaseRepository
from app.repositories.match_repository import (
    MatchRepository,
    SoccerMatchRepository,
    BasketballMatchRepository,
    match_repository_for,
)
from app.repositories.api_key_repository import ApiKeyRepository

__all__ = [
    "BaseRepository",
    "MatchRepository",
    "SoccerMatchRepository",
    "BasketballMatchRepository",
    "match_repository_for",
    "ApiKeyRepository",
]
