from collections import namedtuple

from .errors import ValidationError
from .results import ResultType, is_make, is_pull

MAX_CUPS = 100
MIN_CUPS = 0

HOME = 'home'
AWAY = 'away'

LedgerEntry = namedtuple('LedgerEntry', ['before', 'after', 'delta'])


def clamp_cups(value: int) -> int:
    return min(max(value, MIN_CUPS), MAX_CUPS)


def normalize_count(count) -> int:
    """Signed pull magnitude: truncated to int, zero counts as one."""
    if count is None:
        return 1
    if isinstance(count, bool):
        raise ValidationError('Count must be a number')
    try:
        value = int(count)
    except (TypeError, ValueError):
        raise ValidationError('Count must be a number')
    return value or 1


def cups_delta(result_type, count=None) -> int:
    if is_pull(result_type):
        return normalize_count(count)
    return 1 if is_make(result_type) else 0


def compute(result_type, remaining: int, count=None) -> LedgerEntry:
    """Apply one event to the remaining count of the rack it hits.

    Makes take one cup, misses none. Pulls take ``count`` cups; a negative
    count puts cups back. The result is always clamped to [0, 100].
    """
    delta = cups_delta(result_type, count)
    return LedgerEntry(remaining, clamp_cups(remaining - delta), delta)


def target_side(result_type, offense_team_id, home_team_id) -> str:
    """Which rack an event lands on."""
    result_type = ResultType.parse(result_type)
    if result_type is ResultType.PULL_HOME:
        return HOME
    if result_type is ResultType.PULL_AWAY:
        return AWAY
    return AWAY if offense_team_id == home_team_id else HOME


def winner_from_remaining(home_cups: int, away_cups: int, stats_source: str = 'TRACKED'):
    """HOME, AWAY or None for a level score.

    Tracked games count cups left on each rack, so the fuller rack wins.
    Imported legacy games count cups sunk, so the reverse holds.
    """
    if home_cups == away_cups:
        return None
    if stats_source == 'LEGACY':
        return HOME if home_cups < away_cups else AWAY
    return HOME if away_cups < home_cups else AWAY
