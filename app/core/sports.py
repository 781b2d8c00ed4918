"""
Sports served by the API and their upstream feed configuration.
"""
from enum import Enum


class Sport(str, Enum):
    """Sport identifiers used in URLs, API key scopes and sync jobs."""

    SOCCER = "soccer"
    BASKETBALL = "basketball"


# Scope value granting access to every sport
ALL_SPORTS_SCOPE = "*"

SPORT_CONFIG = {
    Sport.SOCCER: {
        'name': 'Soccer',
        'feed_path': 'soccernew',
        'live_statuses': ("1H", "HT", "2H", "ET", "P", "Live", "In Play"),
    },
    Sport.BASKETBALL: {
        'name': 'Basketball',
        'feed_path': 'bsktbl',
        'live_statuses': ("Q1", "Q2", "Q3", "Q4", "OT", "HT", "Live", "In Play"),
    },
}


def feed_path(sport: Sport) -> str:
    """Path segment identifying the sport in Goalserve feed URLs."""
    return SPORT_CONFIG[Sport(sport)]['feed_path']


def live_statuses(sport: Sport) -> tuple:
    """Upstream status codes that mean a match is in progress."""
    return SPORT_CONFIG[Sport(sport)]['live_statuses']
