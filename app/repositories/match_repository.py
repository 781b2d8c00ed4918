"""
Match repositories for soccer and basketball data access.

Both sports share the same access pattern: the upstream ``match_id`` is the
natural key, live state is rewritten in place, and the read API pages
through matches by date, status and league.

Usage:
    repo = SoccerMatchRepository(db)
    match = repo.find_by_match_id(4521337)
    rows, total = repo.find_filtered(status="FT", limit=20)
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import desc

from app.core.sports import Sport, live_statuses
from app.models import SoccerMatch, BasketballMatch
from app.repositories.base import BaseRepository


class MatchRepository(BaseRepository):
    """Shared queries for sport match tables."""

    sport: Sport
    date_field: str
    time_field: str
    # Columns a sync is allowed to rewrite on an existing row
    volatile_fields: frozenset = frozenset()

    # ========================================================================
    # Reconciliation
    # ========================================================================

    def find_by_match_id(self, match_id: int):
        """Find a match by its upstream id."""
        return self.where_first(self.model_type.match_id == match_id)

    def insert(self, **fields):
        """Add a new match row and flush it so constraint errors surface here."""
        now = datetime.utcnow()
        fields.setdefault("created_at", now)
        fields.setdefault("updated_at", now)
        instance = self.create(**fields)
        self.flush()
        return instance

    def update_volatile_fields(self, match_id: int, fields: Dict[str, Any]):
        """
        Rewrite the live state of an existing match.

        Identity columns (league, teams, schedule) are never touched here.

        Returns:
            The updated row, or None if no row has this match_id

        Raises:
            ValueError: If a non-volatile column is passed
        """
        illegal = set(fields) - self.volatile_fields
        if illegal:
            raise ValueError(f"Not volatile on {self.model_type.__tablename__}: {sorted(illegal)}")

        instance = self.find_by_match_id(match_id)
        if instance is None:
            return None

        for key, value in fields.items():
            setattr(instance, key, value)
        instance.updated_at = datetime.utcnow()
        self.flush()
        return instance

    # ========================================================================
    # Read API queries
    # ========================================================================

    def find_filtered(
        self,
        match_date: Optional[date] = None,
        status: Optional[str] = None,
        league_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List, int]:
        """
        Page through matches, newest first.

        Returns:
            Tuple of (rows for the page, total rows matching the filters)
        """
        model = self.model_type
        query = self.query()

        if match_date is not None:
            query = query.filter(getattr(model, self.date_field) == match_date)
        if status:
            query = query.filter(model.match_status == status)
        if league_id is not None:
            query = query.filter(model.league_id == league_id)

        total = query.count()
        rows = (
            query.order_by(
                desc(getattr(model, self.date_field)),
                desc(getattr(model, self.time_field)),
                desc(model.id),
            )
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    def find_live(self) -> List:
        """Matches whose status says they are in progress."""
        model = self.model_type
        return (
            self.query()
            .filter(model.match_status.in_(live_statuses(self.sport)))
            .order_by(getattr(model, self.date_field), getattr(model, self.time_field))
            .all()
        )

    def list_leagues(self) -> List[Dict[str, Any]]:
        """Distinct leagues seen in this table, ordered by name."""
        model = self.model_type
        rows = (
            self.db.query(model.league_id, model.league_gid, model.league_name)
            .distinct()
            .order_by(model.league_name, model.league_id)
            .all()
        )
        return [
            {"id": league_id, "gid": league_gid, "name": league_name}
            for league_id, league_gid, league_name in rows
        ]


class SoccerMatchRepository(MatchRepository):
    """Repository for soccer_matches."""

    sport = Sport.SOCCER
    date_field = "match_start_date"
    time_field = "match_start_time"
    volatile_fields = frozenset({
        "match_status",
        "h_team_goals",
        "a_team_goals",
        "ht_score",
        "ft_score",
        "events",
    })

    def __init__(self, db):
        super().__init__(SoccerMatch, db)


class BasketballMatchRepository(MatchRepository):
    """Repository for basketball_matches."""

    sport = Sport.BASKETBALL
    date_field = "match_date"
    time_field = "match_time"
    volatile_fields = frozenset({
        "match_status",
        "timer",
        "h_team_score",
        "h_team_q1",
        "h_team_q2",
        "h_team_q3",
        "h_team_q4",
        "h_team_ot",
        "a_team_score",
        "a_team_q1",
        "a_team_q2",
        "a_team_q3",
        "a_team_q4",
        "a_team_ot",
    })

    def __init__(self, db):
        super().__init__(BasketballMatch, db)


MATCH_REPOSITORIES = {
    Sport.SOCCER: SoccerMatchRepository,
    Sport.BASKETBALL: BasketballMatchRepository,
}


def match_repository_for(sport: Sport, db) -> MatchRepository:
    """Build the match repository for a sport."""
    return MATCH_REPOSITORIES[Sport(sport)](db)
