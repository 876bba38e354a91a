from datetime import datetime, timezone

from flask import current_app

from rackscore.models import Game, GameState, utcnow
from .errors import StateConflictError, ValidationError
from .ledger import MAX_CUPS
from .results import GamePhase, GameStatus, StatsSource
from .transactions import atomic, lock_game


def _parse_when(value):
    if value is None or isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError('scheduled_at must be an ISO-8601 timestamp')
    if parsed is not None and parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _player_ids(values, label):
    try:
        ids = [int(v) for v in (values or [])]
    except (TypeError, ValueError):
        raise ValidationError(f'{label} must be a list of player ids')
    if len(set(ids)) != len(ids):
        raise ValidationError(f'{label} contains duplicate players')
    return ids


class GameLifecycle:
    """Game setup and the SCHEDULED -> IN_PROGRESS start."""

    def __init__(self, session, turns, lineups):
        self.session = session
        self.turns = turns
        self.lineups = lineups

    def create_game(self, home_team_id, away_team_id, home_lineup_ids=None, away_lineup_ids=None,
                    stats_source=StatsSource.TRACKED, location=None, scheduled_at=None) -> Game:
        if home_team_id is None or away_team_id is None:
            raise ValidationError('Missing teams')
        if home_team_id == away_team_id:
            raise ValidationError('Teams must differ')
        try:
            source = StatsSource(str(getattr(stats_source, 'value', stats_source)).upper())
        except ValueError:
            raise ValidationError(f'Unknown stats source: {stats_source}')
        home_ids = _player_ids(home_lineup_ids, 'home_lineup_ids')
        away_ids = _player_ids(away_lineup_ids, 'away_lineup_ids')
        if set(home_ids) & set(away_ids):
            raise ValidationError('A player cannot be in both lineups')

        when = _parse_when(scheduled_at)
        status = GameStatus.SCHEDULED if when and when > utcnow() else GameStatus.IN_PROGRESS

        with atomic(self.session):
            game = Game(
                home_team_id=home_team_id,
                away_team_id=away_team_id,
                status=status.value,
                stats_source=source.value,
                location=location,
                scheduled_at=when,
                started_at=when or utcnow(),
            )
            self.session.add(game)
            self.session.flush()
            self.session.add(GameState(
                game_id=game.id,
                possession_team_id=home_team_id,
                home_cups_remaining=MAX_CUPS,
                away_cups_remaining=MAX_CUPS,
                current_turn_number=1,
                current_shooter_index=0,
                phase=GamePhase.REGULATION.value,
                status=status.value,
            ))
            self.lineups.add(game.id, home_team_id, home_ids)
            self.lineups.add(game.id, away_team_id, away_ids)
            self.session.flush()
            self.turns.create_first_turn(game)
            current_app.logger.info(
                f"[create] game={game.id} home={home_team_id} away={away_team_id} status={status.value}"
            )
        return game

    def start_game(self, game_id) -> Game:
        with atomic(self.session):
            game = lock_game(self.session, game_id)
            # Idempotent start: already started
            if game.status == GameStatus.IN_PROGRESS:
                return game
            if game.status != GameStatus.SCHEDULED:
                raise StateConflictError('Game has already finished')
            game.status = GameStatus.IN_PROGRESS.value
            game.started_at = utcnow()
            if game.state is not None:
                game.state.status = GameStatus.IN_PROGRESS.value
            self.session.add(game)
            current_app.logger.info(f"[start] game={game.id}")
        return game
