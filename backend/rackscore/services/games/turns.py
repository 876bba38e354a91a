from typing import List, NamedTuple, Optional

from flask import current_app

from rackscore.models import Game, Turn
from .errors import ValidationError
from .results import is_pull


class TurnPlan(NamedTuple):
    """A turn the state machine wants opened next."""
    offense_team_id: int
    is_bonus: bool
    shooter_ids: Optional[List[int]]


class TurnManager:
    """Owns the turn lifecycle of a game.

    Turns are created at possession changes, bonus continuations and
    redemption assignments, and never mutated afterwards. Only
    recomputation prunes trailing turns that nothing was logged against.
    """

    def __init__(self, session, events, lineups, default_lineup_size: int = 6):
        self.session = session
        self.events = events
        self.lineups = lineups
        self.default_lineup_size = default_lineup_size

    def ordered(self, game_id) -> List[Turn]:
        return self.session.query(Turn).filter_by(game_id=game_id).order_by(Turn.turn_index.asc()).all()

    def latest(self, game_id) -> Optional[Turn]:
        return self.session.query(Turn).filter_by(game_id=game_id).order_by(Turn.turn_index.desc()).first()

    def current_turn(self, game: Game) -> Turn:
        turn = self.latest(game.id)
        if turn is None:
            turn = self.create_first_turn(game)
        return turn

    def create_first_turn(self, game: Game) -> Turn:
        plan = TurnPlan(game.home_team_id, False, self.lineups.active_lineup(game.id, game.home_team_id))
        return self._create(game, 1, plan)

    def open_turn(self, game: Game, after: Turn, plan: TurnPlan) -> Turn:
        return self._create(game, after.turn_index + 1, plan)

    def advance(self, game: Game, turn: Turn) -> Turn:
        """Manual possession flip; the new turn falls back to the live lineup."""
        return self.open_turn(game, turn, TurnPlan(game.other_team(turn.offense_team_id), False, None))

    def _create(self, game: Game, turn_index: int, plan: TurnPlan) -> Turn:
        turn = Turn(
            game_id=game.id,
            turn_index=turn_index,
            offense_team_id=plan.offense_team_id,
            is_bonus=plan.is_bonus,
            shooter_ids=plan.shooter_ids,
        )
        self.session.add(turn)
        self.session.flush()
        current_app.logger.info(
            f"[turn-open] game={game.id} turn={turn_index} offense={plan.offense_team_id} "
            f"bonus={plan.is_bonus} shooters={plan.shooter_ids}"
        )
        return turn

    def remove(self, turn: Turn) -> None:
        self.session.delete(turn)
        self.session.flush()

    @staticmethod
    def matches(turn: Turn, plan: TurnPlan) -> bool:
        return (
            turn.offense_team_id == plan.offense_team_id
            and bool(turn.is_bonus) == plan.is_bonus
            and turn.shooter_ids == list(plan.shooter_ids or [])
        )

    def eligible_shooters(self, turn: Turn) -> List[int]:
        return turn.shooter_ids or self.lineups.active_lineup(turn.game_id, turn.offense_team_id)

    def quota(self, turn: Turn) -> int:
        return max(len(self.eligible_shooters(turn)) or self.default_lineup_size, 1)

    def shots_in_turn(self, turn: Turn) -> int:
        return len(self.events.shots_for_turn(turn.id))

    def turn_exhausted(self, turn: Turn) -> bool:
        return self.shots_in_turn(turn) >= self.quota(turn)

    def validate_shooter(self, turn: Turn, result_type, shooter_id) -> None:
        if is_pull(result_type):
            return
        if shooter_id is None:
            raise ValidationError('Shooter is required for shot events')
        eligible = self.eligible_shooters(turn)
        # No lineup configured: accept any shooter
        if eligible and shooter_id not in eligible:
            raise ValidationError('Shooter is not active in this turn')
