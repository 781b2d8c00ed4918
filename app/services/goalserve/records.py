"""
Typed records produced by the feed normalizer.

These are what the reconciler works with: every id is an int, every score
is an int or None, and dates are real ``date``/``time`` values.
"""
from dataclasses import dataclass, field
from datetime import date, time
from typing import List, Optional, Tuple, Union


@dataclass(frozen=True)
class FeedCategory:
    """A league/competition block of the feed."""
    league_id: int
    league_gid: int
    league_name: str
    file_group: Optional[str] = None


@dataclass(frozen=True)
class SoccerEvent:
    """Goal, card or substitution inside a soccer match."""
    type: str
    team: str
    player: str
    minute: str

    def to_dict(self) -> dict:
        return {"type": self.type, "team": self.team, "player": self.player, "minute": self.minute}


@dataclass(frozen=True)
class SoccerTeam:
    team_id: int
    name: str
    goals: Optional[int]


@dataclass(frozen=True)
class SoccerMatchRecord:
    match_id: int
    status: str
    start_date: date
    start_time: time
    home: SoccerTeam
    away: SoccerTeam
    ht_score: Optional[str] = None
    ft_score: Optional[str] = None
    events: Tuple[SoccerEvent, ...] = ()


@dataclass(frozen=True)
class BasketballTeam:
    team_id: int
    name: str
    total: Optional[int] = None
    q1: Optional[int] = None
    q2: Optional[int] = None
    q3: Optional[int] = None
    q4: Optional[int] = None
    ot: Optional[int] = None


@dataclass(frozen=True)
class BasketballMatchRecord:
    match_id: int
    status: str
    match_date: date
    match_time: time
    home: BasketballTeam
    away: BasketballTeam
    timer: Optional[str] = None


MatchRecord = Union[SoccerMatchRecord, BasketballMatchRecord]


@dataclass(frozen=True)
class RejectedRecord:
    """An upstream match the normalizer had to skip."""
    match_id: Optional[str]
    reason: str


@dataclass
class NormalizedFeed:
    """Output of normalizing one feed document."""
    matches: List[Tuple[FeedCategory, MatchRecord]] = field(default_factory=list)
    rejected: List[RejectedRecord] = field(default_factory=list)
