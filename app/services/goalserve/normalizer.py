"""
Feed normalizer: raw Goalserve ``scores`` objects to typed match records.

Goalserve's JSON is converted from XML, which leaves a few quirks this
module absorbs so nothing downstream has to:

- A list with one element is serialized as a bare object, and an empty list
  as null or an absent key. ``as_list`` turns all three shapes into a list.
- Every number is a string, often empty or a placeholder such as "?".
- Soccer dates come in more than one format.

Usage:
    feed = normalize(Sport.SOCCER, scores)
    for category, match in feed.matches:
        ...
"""
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.core.logging import get_logger
from app.core.sports import Sport
from app.services.goalserve.exceptions import InvalidRecord, InvalidSchedule
from app.services.goalserve.records import (
    BasketballMatchRecord,
    BasketballTeam,
    FeedCategory,
    NormalizedFeed,
    RejectedRecord,
    SoccerEvent,
    SoccerMatchRecord,
    SoccerTeam,
)

logger = get_logger(__name__)

COMBINED_FORMAT = "%d.%m.%Y %H:%M"
MONTH_NAME_FORMAT = "%b %d %Y %H:%M"  # "Dec 22" + year + time
DATE_FORMAT = "%d.%m.%Y"
TIME_FORMAT = "%H:%M"


# ============================================================================
# Shape and value helpers
# ============================================================================

def as_list(value: Any) -> List[Any]:
    """
    Normalize an XML-derived collection to a list.

    None, a missing key or a scalar placeholder give an empty list, a bare
    object gives a one-element list and a list is returned as is.
    """
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value]
    return []


def _text(obj: Dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _object(obj: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = obj.get(key)
    return value if isinstance(value, dict) else {}


def parse_int_or_zero(value: Any) -> int:
    """Parse a display id; anything unparsable becomes 0."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def parse_optional_int(value: Any) -> Optional[int]:
    """Parse a score; empty or unparsable means no score yet (None, not 0)."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_match_id(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidRecord(f"invalid match id: {value!r}", match_id=optional_text(value))


# ============================================================================
# Schedule parsing
# ============================================================================

def _nearest_year(month_day: str, time_text: str, today: date) -> Optional[datetime]:
    """
    Parse "Mon D" + time, picking the year that lands closest to ``today``.

    The feed omits the year in this format, so a fixture listed as "Jan 2"
    while it is still December belongs to next year, and "Dec 31" seen on
    January 1st belongs to the previous one.
    """
    candidates = []
    for year in (today.year - 1, today.year, today.year + 1):
        try:
            candidates.append(datetime.strptime(f"{month_day} {year} {time_text}", MONTH_NAME_FORMAT))
        except ValueError:
            continue
    if not candidates:
        return None
    return min(candidates, key=lambda dt: abs((dt.date() - today).days))


def parse_soccer_schedule(
    date_text: str,
    time_text: str,
    today: Optional[date] = None,
) -> Tuple[date, time]:
    """
    Parse a soccer match date and kick-off time.

    Formats are tried in order and the first that parses wins:
    1. "DD.MM.YYYY HH:MM" from the combined date and time
    2. "Mon D" plus time, year inferred (see ``_nearest_year``)
    3. "DD.MM.YYYY" and "HH:MM" parsed separately

    Raises:
        InvalidSchedule: If no format matches or either part is missing
    """
    date_text = (date_text or "").strip()
    time_text = (time_text or "").strip()
    if not date_text or not time_text:
        raise InvalidSchedule(f"missing date or time data: date={date_text!r}, time={time_text!r}")

    try:
        combined = datetime.strptime(f"{date_text} {time_text}", COMBINED_FORMAT)
        return combined.date(), combined.time()
    except ValueError:
        pass

    month_name = _nearest_year(date_text, time_text, today or date.today())
    if month_name is not None:
        return month_name.date(), month_name.time()

    return parse_split_schedule(date_text, time_text)


def parse_split_schedule(date_text: str, time_text: str) -> Tuple[date, time]:
    """
    Parse "DD.MM.YYYY" and "HH:MM" as two independent fields.

    Raises:
        InvalidSchedule: If either field is missing or does not parse
    """
    date_text = (date_text or "").strip()
    time_text = (time_text or "").strip()
    if not date_text or not time_text:
        raise InvalidSchedule(f"missing date or time data: date={date_text!r}, time={time_text!r}")

    try:
        match_date = datetime.strptime(date_text, DATE_FORMAT).date()
    except ValueError:
        raise InvalidSchedule(f"invalid date format: {date_text!r}")

    try:
        match_time = datetime.strptime(time_text, TIME_FORMAT).time()
    except ValueError:
        raise InvalidSchedule(f"invalid time format: {time_text!r}")

    return match_date, match_time


# ============================================================================
# Soccer
# ============================================================================

def normalize_events(raw: Any) -> Tuple[SoccerEvent, ...]:
    """
    Normalize a soccer ``events`` block to a tuple of events.

    Accepts null, ``{"event": obj}``, ``{"event": [...]}`` or a bare list.
    A malformed block yields no events instead of failing the match.
    """
    if isinstance(raw, dict):
        items = as_list(raw.get("event"))
    elif isinstance(raw, list):
        items = raw
    else:
        return ()

    events = []
    for item in items:
        if not isinstance(item, dict):
            logger.debug(f"Dropping malformed events block: {type(item).__name__} entry")
            return ()
        events.append(SoccerEvent(
            type=_text(item, "@type"),
            team=_text(item, "@team"),
            player=_text(item, "@player"),
            minute=_text(item, "@time"),
        ))
    return tuple(events)


def _soccer_team(raw: Dict[str, Any]) -> SoccerTeam:
    return SoccerTeam(
        team_id=parse_int_or_zero(raw.get("@id")),
        name=_text(raw, "@name"),
        goals=parse_optional_int(raw.get("@goals")),
    )


def normalize_soccer_match(raw: Any, today: Optional[date] = None) -> SoccerMatchRecord:
    """
    Normalize one soccer ``match`` object.

    Raises:
        InvalidRecord: Not an object, or the match id is not numeric
        InvalidSchedule: Date/time not parsable
    """
    if not isinstance(raw, dict):
        raise InvalidRecord(f"match is a {type(raw).__name__}, expected an object")

    match_id = parse_match_id(raw.get("@id"))
    date_text = _text(raw, "@formatted_date") or _text(raw, "@date")
    try:
        start_date, start_time = parse_soccer_schedule(date_text, _text(raw, "@time"), today)
    except InvalidSchedule as e:
        e.match_id = str(match_id)
        raise

    return SoccerMatchRecord(
        match_id=match_id,
        status=_text(raw, "@status"),
        start_date=start_date,
        start_time=start_time,
        home=_soccer_team(_object(raw, "localteam")),
        away=_soccer_team(_object(raw, "visitorteam")),
        ht_score=optional_text(_object(raw, "ht").get("@score")),
        ft_score=optional_text(_object(raw, "ft").get("@score")),
        events=normalize_events(raw.get("events")),
    )


def soccer_category(raw: Dict[str, Any]) -> FeedCategory:
    return FeedCategory(
        league_id=parse_int_or_zero(raw.get("@id")),
        league_gid=parse_int_or_zero(raw.get("@gid")),
        league_name=_text(raw, "@name"),
    )


def soccer_matches(raw: Dict[str, Any]) -> List[Any]:
    raw_matches = []
    for block in as_list(raw.get("matches")):
        if isinstance(block, dict):
            raw_matches.extend(as_list(block.get("match")))
    return raw_matches


# ============================================================================
# Basketball
# ============================================================================

def _basketball_team(raw: Dict[str, Any]) -> BasketballTeam:
    return BasketballTeam(
        team_id=parse_int_or_zero(raw.get("id")),
        name=_text(raw, "name"),
        total=parse_optional_int(raw.get("totalscore")),
        q1=parse_optional_int(raw.get("q1")),
        q2=parse_optional_int(raw.get("q2")),
        q3=parse_optional_int(raw.get("q3")),
        q4=parse_optional_int(raw.get("q4")),
        ot=parse_optional_int(raw.get("ot")),
    )


def normalize_basketball_match(raw: Any, today: Optional[date] = None) -> BasketballMatchRecord:
    """
    Normalize one basketball ``match`` object.

    Raises:
        InvalidRecord: Not an object, or the match id is not numeric
        InvalidSchedule: Date or time not parsable
    """
    if not isinstance(raw, dict):
        raise InvalidRecord(f"match is a {type(raw).__name__}, expected an object")

    match_id = parse_match_id(raw.get("id"))
    try:
        match_date, match_time = parse_split_schedule(_text(raw, "date"), _text(raw, "time"))
    except InvalidSchedule as e:
        e.match_id = str(match_id)
        raise

    return BasketballMatchRecord(
        match_id=match_id,
        status=_text(raw, "status"),
        match_date=match_date,
        match_time=match_time,
        home=_basketball_team(_object(raw, "localteam")),
        away=_basketball_team(_object(raw, "awayteam")),
        timer=optional_text(raw.get("timer")),
    )


def basketball_category(raw: Dict[str, Any]) -> FeedCategory:
    return FeedCategory(
        league_id=parse_int_or_zero(raw.get("id")),
        league_gid=parse_int_or_zero(raw.get("gid")),
        league_name=_text(raw, "name"),
        file_group=optional_text(raw.get("file_group")),
    )


def basketball_matches(raw: Dict[str, Any]) -> List[Any]:
    return as_list(raw.get("match"))


# ============================================================================
# Entry point
# ============================================================================

_SPORT_DECODERS: Dict[Sport, Tuple[Callable, Callable, Callable]] = {
    Sport.SOCCER: (soccer_category, soccer_matches, normalize_soccer_match),
    Sport.BASKETBALL: (basketball_category, basketball_matches, normalize_basketball_match),
}


def normalize(sport: Sport, scores: Dict[str, Any], today: Optional[date] = None) -> NormalizedFeed:
    """
    Decode an unwrapped ``scores`` object into (category, match) pairs.

    Matches that cannot be normalized are collected in ``rejected`` and
    logged; they never abort the rest of the document.
    """
    decode_category, list_matches, decode_match = _SPORT_DECODERS[Sport(sport)]
    feed = NormalizedFeed()

    for raw_category in as_list(scores.get("category")):
        if not isinstance(raw_category, dict):
            continue
        category = decode_category(raw_category)

        for raw_match in list_matches(raw_category):
            try:
                record = decode_match(raw_match, today)
            except InvalidRecord as e:
                logger.warning(f"Skipping {Sport(sport).value} match {e.match_id or '?'}: {e}")
                feed.rejected.append(RejectedRecord(match_id=e.match_id, reason=str(e)))
                continue
            feed.matches.append((category, record))

    return feed
