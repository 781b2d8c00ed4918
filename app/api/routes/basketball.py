"""
Basketball read routes.

All routes require an API key whose scope includes basketball.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.responses import basketball_match_to_dict, page_meta, success
from app.api.routes.common import DEFAULT_LIMIT, MAX_LIMIT, parse_match_id
from app.core.auth import require_sport
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.core.sports import Sport
from app.repositories import BasketballMatchRepository

router = APIRouter(
    prefix="/basketball",
    tags=["basketball"],
    dependencies=[Depends(require_sport(Sport.BASKETBALL))],
)


@router.get("/matches")
async def list_matches(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Maximum results (1-100)"),
    offset: int = Query(0, ge=0, description="Results to skip"),
    match_date: Optional[date] = Query(None, alias="date", description="Filter by date (YYYY-MM-DD)"),
    status: Optional[str] = Query(None, description="Filter by status (Q1, Q2, HT, Final, ...)"),
    league_id: Optional[int] = Query(None, description="Filter by league ID"),
    db: Session = Depends(get_db),
):
    """List basketball matches, newest first."""
    rows, total = BasketballMatchRepository(db).find_filtered(
        match_date=match_date,
        status=status,
        league_id=league_id,
        limit=limit,
        offset=offset,
    )
    return success(
        [basketball_match_to_dict(row) for row in rows],
        meta=page_meta(total, limit, offset),
    )


@router.get("/matches/live")
async def live_matches(db: Session = Depends(get_db)):
    """Basketball matches currently in play (Q1-Q4, OT, HT, ...)."""
    rows = BasketballMatchRepository(db).find_live()
    return success([basketball_match_to_dict(row) for row in rows])


@router.get("/matches/{match_id}")
async def get_match(match_id: str, db: Session = Depends(get_db)):
    """Get one basketball match by Goalserve match id."""
    match = BasketballMatchRepository(db).find_by_match_id(parse_match_id(match_id))
    if match is None:
        raise NotFoundError("Match not found")
    return success(basketball_match_to_dict(match))


@router.get("/leagues")
async def list_leagues(db: Session = Depends(get_db)):
    """Leagues with at least one stored basketball match."""
    return success(BasketballMatchRepository(db).list_leagues())
