"""
Match reconciler: insert-or-update of one normalized record.

The upstream ``match_id`` decides the branch. A new match is inserted with
every field; a known match only gets its live state rewritten (status,
scores, timer, events). League, teams and schedule are kept as first seen.

Each call commits on its own, so a failing record never takes other
records of the same batch with it.
"""
from enum import Enum
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.logging import get_logger
from app.core.sports import Sport
from app.repositories import match_repository_for
from app.services.goalserve.records import (
    BasketballMatchRecord,
    FeedCategory,
    MatchRecord,
    SoccerMatchRecord,
)

logger = get_logger(__name__)


class ReconcileResult(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"


class PersistenceError(Exception):
    """Storing one record failed; the record is skipped."""

    def __init__(self, message: str, match_id: int):
        super().__init__(message)
        self.match_id = match_id


# ============================================================================
# Field mapping
# ============================================================================

def soccer_volatile_fields(record: SoccerMatchRecord) -> Dict[str, Any]:
    return {
        "match_status": record.status,
        "h_team_goals": record.home.goals,
        "a_team_goals": record.away.goals,
        "ht_score": record.ht_score,
        "ft_score": record.ft_score,
        "events": [event.to_dict() for event in record.events],
    }


def soccer_row(category: FeedCategory, record: SoccerMatchRecord) -> Dict[str, Any]:
    return {
        "match_id": record.match_id,
        "league_id": category.league_id,
        "league_gid": category.league_gid,
        "league_name": category.league_name,
        "match_start_date": record.start_date,
        "match_start_time": record.start_time,
        "h_team_id": record.home.team_id,
        "h_team_name": record.home.name,
        "a_team_id": record.away.team_id,
        "a_team_name": record.away.name,
        **soccer_volatile_fields(record),
    }


def basketball_volatile_fields(record: BasketballMatchRecord) -> Dict[str, Any]:
    home, away = record.home, record.away
    return {
        "match_status": record.status,
        "timer": record.timer,
        "h_team_score": home.total,
        "h_team_q1": home.q1,
        "h_team_q2": home.q2,
        "h_team_q3": home.q3,
        "h_team_q4": home.q4,
        "h_team_ot": home.ot,
        "a_team_score": away.total,
        "a_team_q1": away.q1,
        "a_team_q2": away.q2,
        "a_team_q3": away.q3,
        "a_team_q4": away.q4,
        "a_team_ot": away.ot,
    }


def basketball_row(category: FeedCategory, record: BasketballMatchRecord) -> Dict[str, Any]:
    return {
        "match_id": record.match_id,
        "league_id": category.league_id,
        "league_gid": category.league_gid,
        "league_name": category.league_name,
        "file_group": category.file_group,
        "match_date": record.match_date,
        "match_time": record.match_time,
        "h_team_id": record.home.team_id,
        "h_team_name": record.home.name,
        "a_team_id": record.away.team_id,
        "a_team_name": record.away.name,
        **basketball_volatile_fields(record),
    }


_FIELD_MAPPERS = {
    Sport.SOCCER: (soccer_row, soccer_volatile_fields),
    Sport.BASKETBALL: (basketball_row, basketball_volatile_fields),
}


# ============================================================================
# Reconciler
# ============================================================================

class MatchReconciler:
    """
    Applies normalized records of one sport to its match table.

    Usage:
        reconciler = MatchReconciler(Sport.SOCCER, db)
        result = reconciler.reconcile(category, record)
    """

    def __init__(self, sport: Sport, db: Session):
        self.sport = Sport(sport)
        self.db = db
        self.repository = match_repository_for(self.sport, db)
        self._row, self._volatile = _FIELD_MAPPERS[self.sport]

    def reconcile(self, category: FeedCategory, record: MatchRecord) -> ReconcileResult:
        """
        Insert the match if unknown, otherwise update its live state.

        Raises:
            PersistenceError: The insert/update failed; nothing of this
                record was written
        """
        try:
            existing = self.repository.find_by_match_id(record.match_id)
            if existing is None:
                self.repository.insert(**self._row(category, record))
                result = ReconcileResult.INSERTED
            else:
                self.repository.update_volatile_fields(record.match_id, self._volatile(record))
                result = ReconcileResult.UPDATED
            self.repository.save()
        except SQLAlchemyError as e:
            self.repository.rollback()
            raise PersistenceError(
                f"{self.sport.value} match {record.match_id}: {e.__class__.__name__}: {e}",
                match_id=record.match_id,
            ) from e

        logger.debug(f"{self.sport.value} match {record.match_id} {result.value}")
        return result
