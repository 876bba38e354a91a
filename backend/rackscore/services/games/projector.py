from collections import defaultdict
from typing import Optional

from flask import current_app

from rackscore.models import Game, GameState, Turn, utcnow
from . import ledger
from .audit import audit_trail, record_admin_audit
from .errors import NotFoundError, StateConflictError, ValidationError
from .event_log import EventLog
from .ledger import HOME
from .lineups import LineupDirectory
from .phases import PhaseController, Snapshot
from .results import AdjustAction, GamePhase, GameStatus, ResultType, StatsSource, is_pull, is_shot
from .transactions import atomic, lock_game
from .turns import TurnManager


class StateProjector:
    """Folds the shot log into the GameState snapshot.

    Every mutating call runs in a single transaction scoped to one game and
    holds that game's row lock until it commits.
    """

    def __init__(self, session, events: EventLog, turns: TurnManager, phases: PhaseController,
                 lineups: LineupDirectory):
        self.session = session
        self.events = events
        self.turns = turns
        self.phases = phases
        self.lineups = lineups

    # ---- state rows ----

    def _state(self, game: Game) -> GameState:
        state = self.session.query(GameState).filter_by(game_id=game.id).first()
        if state is None:
            state = GameState(game_id=game.id, possession_team_id=game.home_team_id, status=game.status)
            self.session.add(state)
            self.session.flush()
        return state

    def _persist(self, game: Game, state: GameState, snap: Snapshot) -> None:
        state.possession_team_id = snap.possession_team_id
        state.home_cups_remaining = snap.home_cups
        state.away_cups_remaining = snap.away_cups
        state.current_turn_number = snap.turn_number
        state.current_shooter_index = snap.shooter_index
        state.phase = snap.phase.value
        state.status = snap.status.value
        game.status = snap.status.value
        game.winner_team_id = snap.winner_team_id
        if snap.status == GameStatus.FINAL:
            game.ended_at = game.ended_at or utcnow()
        else:
            game.ended_at = None
        self.session.add(state)
        self.session.add(game)

    # ---- live path ----

    def apply_event(self, game_id, result_type, team_id=None, shooter_id=None, count=None):
        result = ResultType.parse(result_type)
        if is_pull(result):
            shooter_id = None
            ledger.normalize_count(count)
        with atomic(self.session):
            game = lock_game(self.session, game_id)
            if game.status != GameStatus.IN_PROGRESS:
                raise StateConflictError('Only in-progress games can be edited')
            if team_id is not None and not game.has_team(team_id):
                raise ValidationError('Team is not playing in this game')

            state = self._state(game)
            turn = self.turns.current_turn(game)
            self.turns.validate_shooter(turn, result, shooter_id)
            before = Snapshot.from_state(game, state)

            offense = turn.offense_team_id
            side = ledger.target_side(result, offense, game.home_team_id)
            target_team = game.home_team_id if side == HOME else game.away_team_id
            remaining = before.home_cups if side == HOME else before.away_cups
            entry = ledger.compute(result, remaining, count)
            defense = target_team if is_pull(result) else game.other_team(offense)

            event = self.events.append(game.id, turn.id, offense, defense, shooter_id, result, entry)
            home_after = entry.after if side == HOME else before.home_cups
            away_after = before.away_cups if side == HOME else entry.after

            transition = self.phases.evaluate(
                game, before, turn, event, home_after, away_after, self.events.shots_for_turn(turn.id)
            )
            if transition.next_turn is not None:
                self.turns.open_turn(game, turn, transition.next_turn)
            self._persist(game, state, transition.snapshot)
            current_app.logger.info(
                f"[event] game={game.id} turn={turn.turn_index} result={result.value} shooter={shooter_id} "
                f"cups={entry.before}->{entry.after} phase={transition.snapshot.phase.value} "
                f"status={transition.snapshot.status.value}"
            )
        return event

    def advance(self, game_id):
        with atomic(self.session):
            game = lock_game(self.session, game_id)
            if game.status != GameStatus.IN_PROGRESS:
                raise StateConflictError('Only in-progress games can be advanced')
            state = self._state(game)
            turn = self.turns.advance(game, self.turns.current_turn(game))
            snap = self.phases.enter_turn(game, Snapshot.from_state(game, state), turn)
            self._persist(game, state, snap)
            current_app.logger.info(f"[advance] game={game.id} turn={turn.turn_index} offense={turn.offense_team_id}")
        return turn

    def finalize(self, game_id, winner_team_id=None):
        with atomic(self.session):
            game = lock_game(self.session, game_id)
            if winner_team_id is not None and not game.has_team(winner_team_id):
                raise ValidationError('Winner must be one of the teams in this game')
            state = self._state(game)
            tied = (
                game.status == GameStatus.FINAL
                and state.phase == GamePhase.OVERTIME
                and game.winner_team_id is None
            )
            if tied:
                if winner_team_id is None:
                    raise ValidationError('A winning team is required to finalize a tied game')
                game.winner_team_id = winner_team_id
                self.session.add(game)
            elif game.status == GameStatus.IN_PROGRESS:
                snap = Snapshot.from_state(game, state)
                if winner_team_id is None:
                    side = ledger.winner_from_remaining(snap.home_cups, snap.away_cups, game.stats_source)
                    if side is not None:
                        winner_team_id = game.home_team_id if side == HOME else game.away_team_id
                self._persist(game, state, snap._replace(status=GameStatus.FINAL, winner_team_id=winner_team_id))
            elif game.status == GameStatus.FINAL:
                raise StateConflictError('Game is already final')
            else:
                raise StateConflictError('Only in-progress games can be finalized')
            current_app.logger.info(f"[finalize] game={game.id} winner={game.winner_team_id}")
        return game

    # ---- corrections ----

    def undo(self, game_id):
        with atomic(self.session):
            game = lock_game(self.session, game_id)
            event = self.events.latest(game.id)
            if event is None:
                raise NotFoundError('No events to undo')
            removed_id = event.id
            self.events.remove(event)
            snap = self._rebuild(game)
            current_app.logger.info(f"[undo] game={game.id} removed_event={removed_id} turn={snap.turn_number}")
        return snap

    def adjust(self, game_id, player_id, result_type, action, actor=None):
        result = ResultType.parse(result_type)
        if not is_shot(result):
            raise ValidationError('Only shot results can be adjusted')
        try:
            action = AdjustAction(str(getattr(action, 'value', action)).upper())
        except ValueError:
            raise ValidationError(f'Unknown adjustment action: {action}')

        with atomic(self.session):
            game = lock_game(self.session, game_id)
            if not game.is_final:
                raise StateConflictError('Only finalized games can be edited')
            if game.stats_source != StatsSource.TRACKED:
                raise StateConflictError('Legacy games cannot be edited with this tool')
            team_id = self.lineups.team_of(game.id, player_id)
            if team_id is None:
                raise ValidationError('Player is not in this game lineup')

            state = self._state(game)
            before_state = state.to_dict()
            details = {'player_id': player_id, 'result_type': result.value, 'before_state': before_state}

            if action == AdjustAction.ADD:
                side = ledger.target_side(result, team_id, game.home_team_id)
                remaining = state.home_cups_remaining if side == HOME else state.away_cups_remaining
                last_turn = self.turns.latest(game.id)
                event = self.events.append(
                    game.id,
                    last_turn.id if last_turn else None,
                    team_id,
                    game.other_team(team_id),
                    player_id,
                    result,
                    ledger.compute(result, remaining),
                    is_adjustment=True,
                    note='Admin adjustment',
                )
                entity_id = event.id
            else:
                event = self.events.latest_matching(game.id, player_id, result)
                if event is None:
                    raise NotFoundError('No matching shot to remove')
                entity_id = event.id
                details['removed_event'] = event.to_dict()
                self.events.remove(event)

            self._rebuild(game, preserve_final_status=True)
            details['after_state'] = state.to_dict()
            record_admin_audit(
                self.session,
                game.id,
                f'GAME_SCORE_ADJUST_{action.value}',
                'ShotEvent',
                entity_id=entity_id,
                details=details,
                actor=actor,
            )
            current_app.logger.info(
                f"[adjust] game={game.id} action={action.value} player={player_id} result={result.value} event={entity_id}"
            )

    # ---- recomputation ----

    def recompute(self, game_id, preserve_final_status=False) -> Snapshot:
        with atomic(self.session):
            game = lock_game(self.session, game_id)
            snap = self._rebuild(game, preserve_final_status=preserve_final_status)
        return snap

    def _rebuild(self, game: Game, preserve_final_status=False) -> Snapshot:
        state = self._state(game)
        was_final = game.status == GameStatus.FINAL
        events = self.events.ordered(game.id)
        turns = self.turns.ordered(game.id)

        # Rack counts in log order, repairing stored before/after values that drifted
        home = away = ledger.MAX_CUPS
        racks_after = {}
        repaired = 0
        for event in events:
            side = ledger.target_side(event.result_type, event.offense_team_id, game.home_team_id)
            before = home if side == HOME else away
            after = ledger.clamp_cups(before - event.cups_delta)
            if side == HOME:
                home = after
            else:
                away = after
            if event.remaining_cups_before != before or event.remaining_cups_after != after:
                event.remaining_cups_before = before
                event.remaining_cups_after = after
                self.session.add(event)
                repaired += 1
            racks_after[event.id] = (home, away)

        by_turn = defaultdict(list)
        for event in events:
            if event.turn_id is not None:
                by_turn[event.turn_id].append(event)
        played = [t for t in turns if by_turn.get(t.id)]
        last_played = played[-1] if played else None

        snap = Snapshot.initial(game)
        plan = None
        for turn in (turns if last_played is not None else []):
            if turn.turn_index > last_played.turn_index:
                break
            if plan is None:
                snap = self.phases.enter_turn(game, snap, turn)
            else:
                snap = snap._replace(possession_team_id=turn.offense_team_id, turn_number=turn.turn_index)
            plan = None
            shots = []
            for event in by_turn.get(turn.id, []):
                if event.is_adjustment or snap.status == GameStatus.FINAL:
                    continue
                if is_shot(event.result_type):
                    shots.append(event)
                home_after, away_after = racks_after[event.id]
                snap, plan = self.phases.evaluate(game, snap, turn, event, home_after, away_after, shots)

        trimmed = self._trim_trailing_turns(game, turns, last_played, plan)
        if last_played is None:
            snap = self.phases.enter_turn(game, snap, trimmed)

        snap = snap._replace(home_cups=home, away_cups=away)
        if snap.status == GameStatus.FINAL:
            if snap.winner_team_id is None and was_final:
                snap = snap._replace(winner_team_id=game.winner_team_id)
        elif preserve_final_status and was_final:
            snap = snap._replace(status=GameStatus.FINAL, winner_team_id=game.winner_team_id)
        else:
            snap = snap._replace(status=GameStatus.IN_PROGRESS, winner_team_id=None)

        self._persist(game, state, snap)
        self.session.flush()
        current_app.logger.info(
            f"[recompute] game={game.id} events={len(events)} repaired={repaired} turn={snap.turn_number} "
            f"shooter={snap.shooter_index} phase={snap.phase.value} status={snap.status.value}"
        )
        return snap

    def _trim_trailing_turns(self, game, turns, last_played, plan) -> Optional[Turn]:
        """Drop trailing turns nothing was logged against, keeping the one the fold requires.

        Returns turn #1 when the log is empty, since a game always has a turn.
        """
        if last_played is None:
            first = turns[0] if turns and turns[0].turn_index == 1 else None
            for turn in turns:
                if turn is not first:
                    self.turns.remove(turn)
            return first or self.turns.create_first_turn(game)

        trailing = [t for t in turns if t.turn_index > last_played.turn_index]
        keep = None
        if plan is not None and trailing:
            candidate = trailing[0]
            if candidate.turn_index == last_played.turn_index + 1 and self.turns.matches(candidate, plan):
                keep = candidate
        for turn in trailing:
            if turn is not keep:
                self.turns.remove(turn)
        if plan is not None and keep is None:
            keep = self.turns.open_turn(game, last_played, plan)
        return keep

    # ---- read side ----

    def describe(self, game_id) -> dict:
        game = self.session.get(Game, game_id)
        if game is None:
            raise NotFoundError('Game not found')
        state = self.session.query(GameState).filter_by(game_id=game.id).first()
        turns = self.turns.ordered(game.id)
        current = turns[-1] if turns else None
        current_turn = None
        if current is not None:
            current_turn = current.to_dict()
            current_turn['eligible_shooter_ids'] = self.turns.eligible_shooters(current)
            current_turn['quota'] = self.turns.quota(current)
            current_turn['shots_taken'] = self.turns.shots_in_turn(current)
            current_turn['exhausted'] = self.turns.turn_exhausted(current)
        return {
            'game': game.to_dict(),
            'state': state.to_dict() if state else None,
            'lineups': [row.to_dict() for row in self.lineups.for_game(game.id)],
            'turns': [t.to_dict() for t in turns],
            'events': [e.to_dict() for e in self.events.ordered(game.id)],
            'current_turn': current_turn,
            'audit': [row.to_dict() for row in audit_trail(self.session, game.id)],
        }
