from datetime import timedelta

from rackscore.models import ShotEvent, utcnow
from .results import PULLS


_TICK = timedelta(microseconds=1)
_PULL_VALUES = frozenset(p.value for p in PULLS)


class EventLog:
    """Append-only shot log, ordered by (timestamp, id) within a game."""

    def __init__(self, session):
        self.session = session

    def _query(self, game_id):
        return self.session.query(ShotEvent).filter(ShotEvent.game_id == game_id)

    def next_timestamp(self, game_id):
        """A timestamp strictly after every event already logged for the game."""
        now = utcnow()
        latest = self.latest(game_id)
        if latest is not None and now <= latest.timestamp:
            now = latest.timestamp + _TICK
        return now

    def append(self, game_id, turn_id, offense_team_id, defense_team_id, shooter_id,
               result_type, entry, is_adjustment=False, note=None) -> ShotEvent:
        event = ShotEvent(
            game_id=game_id,
            turn_id=turn_id,
            offense_team_id=offense_team_id,
            defense_team_id=defense_team_id,
            shooter_id=shooter_id,
            result_type=result_type.value,
            cups_delta=entry.delta,
            remaining_cups_before=entry.before,
            remaining_cups_after=entry.after,
            timestamp=self.next_timestamp(game_id),
            is_adjustment=is_adjustment,
            note=note,
        )
        self.session.add(event)
        self.session.flush()
        return event

    def ordered(self, game_id):
        return self._query(game_id).order_by(ShotEvent.timestamp.asc(), ShotEvent.id.asc()).all()

    def for_turn(self, turn_id):
        return (
            self.session.query(ShotEvent)
            .filter(ShotEvent.turn_id == turn_id)
            .order_by(ShotEvent.timestamp.asc(), ShotEvent.id.asc())
            .all()
        )

    def count_for_turn(self, turn_id) -> int:
        return self.session.query(ShotEvent).filter(ShotEvent.turn_id == turn_id).count()

    def shots_for_turn(self, turn_id):
        """Non-pull, non-adjustment events of a turn in log order."""
        return [
            e for e in self.for_turn(turn_id)
            if e.result_type not in _PULL_VALUES and not e.is_adjustment
        ]

    def latest(self, game_id):
        return self._query(game_id).order_by(ShotEvent.timestamp.desc(), ShotEvent.id.desc()).first()

    def latest_matching(self, game_id, shooter_id, result_type):
        return (
            self._query(game_id)
            .filter(ShotEvent.shooter_id == shooter_id, ShotEvent.result_type == result_type.value)
            .order_by(ShotEvent.timestamp.desc(), ShotEvent.id.desc())
            .first()
        )

    def remove(self, event) -> None:
        self.session.delete(event)
        self.session.flush()
