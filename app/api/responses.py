"""
Response envelope helpers.

Every API response has the shape::

    {"success": true, "data": ..., "meta": {"total": 0, "limit": 50, "offset": 0}}
    {"success": false, "error": {"code": "NOT_FOUND", "message": "Match not found"}}

Members that do not apply are omitted.
"""
from datetime import date, time
from typing import Any, Dict, Optional

from app.models import BasketballMatch, SoccerMatch


def success(data: Any, meta: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": data}
    if meta is not None:
        body["meta"] = meta
    return body


def page_meta(total: int, limit: int, offset: int) -> Dict[str, int]:
    return {"total": total, "limit": limit, "offset": offset}


def error_body(code: str, message: str) -> Dict[str, Any]:
    return {"success": False, "error": {"code": code, "message": message}}


def _date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _time(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value else None


def _team(team_id, name, score) -> Dict[str, Any]:
    team = {"id": team_id or 0, "name": name or ""}
    if score is not None:
        team["score"] = score
    return team


def soccer_match_to_dict(match: SoccerMatch, include_events: bool = False) -> Dict[str, Any]:
    """Convert SoccerMatch model to its API representation."""
    data = {
        "id": match.id,
        "match_id": match.match_id,
        "sport": "soccer",
        "league_id": match.league_id or 0,
        "league_gid": match.league_gid or 0,
        "league_name": match.league_name or "",
        "status": match.match_status or "",
        "start_date": _date(match.match_start_date),
        "start_time": _time(match.match_start_time),
        "home_team": _team(match.h_team_id, match.h_team_name, match.h_team_goals),
        "away_team": _team(match.a_team_id, match.a_team_name, match.a_team_goals),
    }
    if match.ht_score:
        data["half_time_score"] = match.ht_score
    if match.ft_score:
        data["full_time_score"] = match.ft_score
    if include_events:
        data["events"] = match.events or []
    return data


def _score_pair(home: Optional[int], away: Optional[int]) -> Optional[Dict[str, Optional[int]]]:
    if home is None and away is None:
        return None
    return {"home": home, "away": away}


def basketball_match_to_dict(match: BasketballMatch) -> Dict[str, Any]:
    """Convert BasketballMatch model to its API representation."""
    data = {
        "id": match.id,
        "match_id": match.match_id,
        "sport": "basketball",
        "league_id": match.league_id or 0,
        "league_gid": match.league_gid or 0,
        "league_name": match.league_name or "",
        "status": match.match_status or "",
        "start_date": _date(match.match_date),
        "start_time": _time(match.match_time),
        "home_team": _team(match.h_team_id, match.h_team_name, match.h_team_score),
        "away_team": _team(match.a_team_id, match.a_team_name, match.a_team_score),
    }
    if match.file_group:
        data["file_group"] = match.file_group
    if match.timer:
        data["timer"] = match.timer

    quarters = {
        "q1": _score_pair(match.h_team_q1, match.a_team_q1),
        "q2": _score_pair(match.h_team_q2, match.a_team_q2),
        "q3": _score_pair(match.h_team_q3, match.a_team_q3),
        "q4": _score_pair(match.h_team_q4, match.a_team_q4),
        "ot": _score_pair(match.h_team_ot, match.a_team_ot),
    }
    quarters = {k: v for k, v in quarters.items() if v is not None}
    if quarters:
        data["quarter_scores"] = quarters
    return data
