"""Phase and turn transitions, evaluated once per applied shot or pull.

The controller is a pure function of the snapshot before the event, the
event itself, the rack counts after it and the shots already logged in the
turn. Both the live path and full recomputation run events through
``PhaseController.evaluate`` so the two can never disagree.

Rules, in order of precedence:

- Both racks empty after the event: OVERTIME and FINAL with no winner. The
  winner is supplied later through finalize.
- REGULATION: every shot advances the shooter index. When the turn's quota
  is used up the turn is closed. A cleared rack hands the cleared team a
  redemption turn, unless the offense sank two or more cups into the empty
  rack, which ends the game. Otherwise two or more distinct scorers earn a
  bonus turn, and anything else passes possession to the defense.
- REDEMPTION: only misses use up an attempt. The comeback ends in OVERTIME
  if the opponent is already empty, or in FINAL once the quota runs out.
- OVERTIME: nothing moves until a winner is supplied.

Pulls only move cups. They never count toward a quota or move the index.
"""

from typing import NamedTuple, Optional

from flask import current_app

from rackscore.models import Game, GameState, Turn
from .ledger import MAX_CUPS
from .results import GamePhase, GameStatus, ResultType, is_make, is_miss, is_pull
from .turns import TurnManager, TurnPlan


class Snapshot(NamedTuple):
    possession_team_id: int
    home_cups: int
    away_cups: int
    turn_number: int
    shooter_index: int
    phase: GamePhase
    status: GameStatus
    winner_team_id: Optional[int] = None

    @classmethod
    def initial(cls, game: Game) -> 'Snapshot':
        return cls(game.home_team_id, MAX_CUPS, MAX_CUPS, 1, 0, GamePhase.REGULATION, GameStatus.IN_PROGRESS)

    @classmethod
    def from_state(cls, game: Game, state: GameState) -> 'Snapshot':
        return cls(
            possession_team_id=state.possession_team_id or game.home_team_id,
            home_cups=state.home_cups_remaining,
            away_cups=state.away_cups_remaining,
            turn_number=state.current_turn_number,
            shooter_index=state.current_shooter_index,
            phase=GamePhase(state.phase),
            status=GameStatus(state.status),
            winner_team_id=game.winner_team_id,
        )

    def cups_of(self, game: Game, team_id) -> int:
        return self.home_cups if team_id == game.home_team_id else self.away_cups


class Transition(NamedTuple):
    snapshot: Snapshot
    next_turn: Optional[TurnPlan]


class PhaseController:

    def __init__(self, turns: TurnManager):
        self.turns = turns

    def evaluate(self, game: Game, before: Snapshot, turn: Turn, event, home_after: int,
                 away_after: int, turn_shots) -> Transition:
        result = ResultType.parse(event.result_type)
        quota = self.turns.quota(turn)
        snap = before._replace(
            home_cups=home_after,
            away_cups=away_after,
            possession_team_id=turn.offense_team_id,
            turn_number=turn.turn_index,
        )

        if home_after == 0 and away_after == 0:
            current_app.logger.info(f"[phase] game={game.id} turn={turn.turn_index} both racks empty -> OVERTIME")
            return Transition(
                snap._replace(phase=GamePhase.OVERTIME, status=GameStatus.FINAL, shooter_index=0, winner_team_id=None),
                None,
            )
        if before.phase == GamePhase.OVERTIME:
            return Transition(snap, None)
        if before.phase == GamePhase.REDEMPTION:
            return self._redemption(game, snap, turn, result, quota)
        return self._regulation(game, snap, turn, result, quota, turn_shots)

    def _regulation(self, game, snap, turn, result, quota, turn_shots) -> Transition:
        if is_pull(result):
            return Transition(snap, None)

        shots = len(turn_shots)
        if shots < quota:
            return Transition(snap._replace(shooter_index=shots % quota), None)

        offense = turn.offense_team_id
        makes = [e for e in turn_shots if is_make(e.result_type)]
        cleared = any(e.remaining_cups_before > 0 and e.remaining_cups_after == 0 for e in makes)
        stuffs = sum(1 for e in makes if e.remaining_cups_before == 0)
        next_index = turn.turn_index + 1

        if cleared:
            if stuffs >= 2:
                current_app.logger.info(f"[phase] game={game.id} turn={turn.turn_index} stuffed rack -> FINAL winner={offense}")
                return Transition(snap._replace(status=GameStatus.FINAL, shooter_index=0, winner_team_id=offense), None)
            if snap.home_cups == 0:
                comeback = game.home_team_id
            elif snap.away_cups == 0:
                comeback = game.away_team_id
            else:
                comeback = game.other_team(offense)
            plan = TurnPlan(comeback, False, self.turns.lineups.active_lineup(game.id, comeback))
            current_app.logger.info(f"[phase] game={game.id} turn={turn.turn_index} rack cleared -> REDEMPTION for {comeback}")
            return Transition(
                snap._replace(
                    phase=GamePhase.REDEMPTION,
                    possession_team_id=comeback,
                    turn_number=next_index,
                    shooter_index=0,
                ),
                plan,
            )

        scorers = []
        for e in makes:
            if e.shooter_id is not None and e.shooter_id not in scorers:
                scorers.append(e.shooter_id)
        if len(scorers) >= 2:
            return Transition(
                snap._replace(turn_number=next_index, shooter_index=0),
                TurnPlan(offense, True, scorers),
            )

        defense = game.other_team(offense)
        return Transition(
            snap._replace(possession_team_id=defense, turn_number=next_index, shooter_index=0),
            TurnPlan(defense, False, self.turns.lineups.active_lineup(game.id, defense)),
        )

    def _redemption(self, game, snap, turn, result, quota) -> Transition:
        index = snap.shooter_index
        # A make keeps the same shooter at the table
        if is_miss(result):
            index += 1

        opponent = game.other_team(turn.offense_team_id)
        if snap.cups_of(game, opponent) <= 0 and is_miss(result):
            current_app.logger.info(f"[phase] game={game.id} turn={turn.turn_index} redemption tied -> OVERTIME")
            return Transition(
                snap._replace(
                    phase=GamePhase.OVERTIME,
                    status=GameStatus.FINAL,
                    shooter_index=index % quota,
                    winner_team_id=None,
                ),
                None,
            )
        if index >= quota:
            current_app.logger.info(f"[phase] game={game.id} turn={turn.turn_index} redemption failed -> FINAL winner={opponent}")
            return Transition(
                snap._replace(status=GameStatus.FINAL, shooter_index=index % quota, winner_team_id=opponent),
                None,
            )
        return Transition(snap._replace(shooter_index=index % quota), None)

    def enter_turn(self, game: Game, snap: Snapshot, turn: Turn) -> Snapshot:
        """Snapshot for a turn that was not opened by a transition (manual advance)."""
        if snap.phase == GamePhase.OVERTIME:
            phase = GamePhase.OVERTIME
        elif snap.cups_of(game, turn.offense_team_id) <= 0:
            phase = GamePhase.REDEMPTION
        else:
            phase = GamePhase.REGULATION
        return snap._replace(
            possession_team_id=turn.offense_team_id,
            turn_number=turn.turn_index,
            shooter_index=0,
            phase=phase,
        )
