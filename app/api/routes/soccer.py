"""
Soccer read routes.

All routes require an API key whose scope includes soccer.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.responses import page_meta, soccer_match_to_dict, success
from app.api.routes.common import DEFAULT_LIMIT, MAX_LIMIT, parse_match_id
from app.core.auth import require_sport
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.core.sports import Sport
from app.repositories import SoccerMatchRepository

router = APIRouter(
    prefix="/soccer",
    tags=["soccer"],
    dependencies=[Depends(require_sport(Sport.SOCCER))],
)


@router.get("/matches")
async def list_matches(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Maximum results (1-100)"),
    offset: int = Query(0, ge=0, description="Results to skip"),
    match_date: Optional[date] = Query(None, alias="date", description="Filter by date (YYYY-MM-DD)"),
    status: Optional[str] = Query(None, description="Filter by status (FT, 1H, HT, 2H, NS)"),
    league_id: Optional[int] = Query(None, description="Filter by league ID"),
    db: Session = Depends(get_db),
):
    """
    List soccer matches, newest first.

    Query Parameters:
    - limit / offset: paging (default 50, max 100)
    - date: match day (YYYY-MM-DD)
    - status: upstream status code
    - league_id: Goalserve league id
    """
    rows, total = SoccerMatchRepository(db).find_filtered(
        match_date=match_date,
        status=status,
        league_id=league_id,
        limit=limit,
        offset=offset,
    )
    return success(
        [soccer_match_to_dict(row) for row in rows],
        meta=page_meta(total, limit, offset),
    )


@router.get("/matches/live")
async def live_matches(db: Session = Depends(get_db)):
    """Soccer matches currently in play (1H, HT, 2H, ET, P, ...)."""
    rows = SoccerMatchRepository(db).find_live()
    return success([soccer_match_to_dict(row) for row in rows])


@router.get("/matches/{match_id}")
async def get_match(match_id: str, db: Session = Depends(get_db)):
    """Get one soccer match, with its events, by Goalserve match id."""
    match = SoccerMatchRepository(db).find_by_match_id(parse_match_id(match_id))
    if match is None:
        raise NotFoundError("Match not found")
    return success(soccer_match_to_dict(match, include_events=True))


@router.get("/leagues")
async def list_leagues(db: Session = Depends(get_db)):
    """Leagues with at least one stored soccer match."""
    return success(SoccerMatchRepository(db).list_leagues())
