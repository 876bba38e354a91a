import json

import pytest

from rackscore import db
from rackscore.models import AdminAuditLog, Game, GameState, ShotEvent, Turn
from rackscore.services.games.errors import NotFoundError, StateConflictError, ValidationError
from helpers import (
    AWAY_LINEUP, AWAY_TEAM, HOME_LINEUP, HOME_TEAM, MAKE, MISS, clear_away_rack, pull, shoot, state_of, turns_of,
)


def snapshot_of(game_id):
    game = db.session.get(Game, game_id)
    return {
        'state': state_of(game_id).to_dict(),
        'winner': game.winner_team_id,
        'turns': [(t.turn_index, t.offense_team_id, bool(t.is_bonus), t.shooter_ids) for t in turns_of(game_id)],
    }


def play_mixed_game(engine, game_id):
    # Bonus turn, possession change, pulls and an away turn
    shoot(engine, game_id, (MAKE, 11), (MAKE, 12), *[(MISS, s) for s in HOME_LINEUP[2:]])
    shoot(engine, game_id, (MISS, 11), (MISS, 12))
    pull(engine, game_id, 'PULL_HOME', 3)
    shoot(engine, game_id, (MAKE, 21), *[(MISS, s) for s in AWAY_LINEUP[1:]])
    shoot(engine, game_id, (MAKE, 11), (MISS, 12))


def test_recompute_matches_live_state(engine, game):
    play_mixed_game(engine, game.id)
    live = snapshot_of(game.id)
    assert live['state']['current_turn_number'] == 4
    assert live['state']['current_shooter_index'] == 2
    assert live['state']['home_cups_remaining'] == 96

    engine.projector.recompute(game.id)
    assert snapshot_of(game.id) == live
    engine.projector.recompute(game.id)
    assert snapshot_of(game.id) == live


def test_recompute_matches_live_redemption(engine, game):
    clear_away_rack(engine, game.id)
    shoot(engine, game.id, (MAKE, 21), (MISS, 21), (MISS, 22))
    live = snapshot_of(game.id)
    assert live['state']['phase'] == 'REDEMPTION'
    assert live['state']['current_shooter_index'] == 2
    engine.projector.recompute(game.id)
    assert snapshot_of(game.id) == live


def test_recompute_repairs_drift(engine, game):
    shoot(engine, game.id, (MAKE, 11), (MAKE, 12), (MISS, 13))
    events = engine.events.ordered(game.id)
    events[1].remaining_cups_before = 40
    events[1].remaining_cups_after = 39
    state = state_of(game.id)
    state.away_cups_remaining = 12
    state.current_shooter_index = 0
    state.phase = 'OVERTIME'
    db.session.commit()

    engine.projector.recompute(game.id)
    state = state_of(game.id)
    assert state.away_cups_remaining == 98
    assert state.current_shooter_index == 3
    assert state.phase == 'REGULATION'
    repaired = engine.events.ordered(game.id)[1]
    assert (repaired.remaining_cups_before, repaired.remaining_cups_after) == (99, 98)


def test_recompute_of_empty_log_resets_to_first_turn(engine, game):
    shoot(engine, game.id, (MISS, 11))
    engine.projector.advance(game.id)
    db.session.query(ShotEvent).filter_by(game_id=game.id).delete()
    db.session.commit()

    engine.projector.recompute(game.id)
    assert [t.turn_index for t in turns_of(game.id)] == [1]
    state = state_of(game.id)
    assert state.possession_team_id == HOME_TEAM
    assert state.current_turn_number == 1
    assert state.current_shooter_index == 0
    assert state.home_cups_remaining == 100


def test_recompute_drops_empty_advanced_turn(engine, game):
    shoot(engine, game.id, (MISS, 11))
    engine.projector.advance(game.id)
    assert len(turns_of(game.id)) == 2
    engine.projector.recompute(game.id)
    assert [t.turn_index for t in turns_of(game.id)] == [1]
    state = state_of(game.id)
    assert state.possession_team_id == HOME_TEAM
    assert state.current_shooter_index == 1


def test_recompute_keeps_played_advanced_turn(engine, game):
    shoot(engine, game.id, (MISS, 11))
    engine.projector.advance(game.id)
    shoot(engine, game.id, (MISS, 23))
    live = snapshot_of(game.id)
    engine.projector.recompute(game.id)
    assert snapshot_of(game.id) == live


def test_recompute_reopens_required_turn(engine, game):
    shoot(engine, game.id, *[(MISS, s) for s in HOME_LINEUP])
    db.session.query(Turn).filter_by(game_id=game.id, turn_index=2).delete()
    db.session.commit()

    engine.projector.recompute(game.id)
    turns = turns_of(game.id)
    assert [t.turn_index for t in turns] == [1, 2]
    assert turns[1].offense_team_id == AWAY_TEAM
    assert turns[1].shooter_ids == AWAY_LINEUP


def test_recompute_status_after_manual_finalize(engine, game):
    shoot(engine, game.id, (MAKE, 11))
    engine.projector.finalize(game.id)

    engine.projector.recompute(game.id, preserve_final_status=True)
    game_row = db.session.get(Game, game.id)
    assert game_row.status == 'FINAL'
    assert game_row.winner_team_id == HOME_TEAM

    engine.projector.recompute(game.id)
    game_row = db.session.get(Game, game.id)
    assert game_row.status == 'IN_PROGRESS'
    assert game_row.winner_team_id is None
    assert game_row.ended_at is None


def test_recompute_keeps_decided_tie(engine, game):
    pull(engine, game.id, 'PULL_HOME', 100)
    pull(engine, game.id, 'PULL_AWAY', 100)
    engine.projector.finalize(game.id, winner_team_id=AWAY_TEAM)
    engine.projector.recompute(game.id)
    game_row = db.session.get(Game, game.id)
    assert game_row.status == 'FINAL'
    assert game_row.winner_team_id == AWAY_TEAM
    assert state_of(game.id).phase == 'OVERTIME'


def test_undo_last_shot_of_turn_removes_next_turn(engine, game):
    shoot(engine, game.id, *[(MISS, s) for s in HOME_LINEUP])
    assert len(turns_of(game.id)) == 2
    engine.projector.undo(game.id)
    assert [t.turn_index for t in turns_of(game.id)] == [1]
    state = state_of(game.id)
    assert state.possession_team_id == HOME_TEAM
    assert state.current_turn_number == 1
    assert state.current_shooter_index == 5


def test_undo_reverses_cups_and_redemption(engine, game):
    clear_away_rack(engine, game.id)
    engine.projector.undo(game.id)
    state = state_of(game.id)
    assert state.phase == 'REGULATION'
    assert state.away_cups_remaining == 0
    assert state.current_shooter_index == 5
    engine.projector.undo(game.id)
    engine.projector.undo(game.id)
    engine.projector.undo(game.id)
    engine.projector.undo(game.id)
    engine.projector.undo(game.id)
    assert state_of(game.id).away_cups_remaining == 1


def test_undo_reopens_finished_game(engine, game):
    clear_away_rack(engine, game.id, stuff_makes=2)
    assert db.session.get(Game, game.id).status == 'FINAL'
    engine.projector.undo(game.id)
    game_row = db.session.get(Game, game.id)
    assert game_row.status == 'IN_PROGRESS'
    assert game_row.winner_team_id is None
    assert game_row.ended_at is None


def test_undo_with_empty_log(engine, game):
    with pytest.raises(NotFoundError):
        engine.projector.undo(game.id)


def test_undo_then_replay_matches(engine, game):
    play_mixed_game(engine, game.id)
    live = snapshot_of(game.id)
    engine.projector.undo(game.id)
    shoot(engine, game.id, (MISS, 12))
    assert snapshot_of(game.id) == live


@pytest.fixture()
def final_game(engine, game):
    shoot(engine, game.id, (MAKE, 11), (MISS, 12))
    engine.projector.finalize(game.id)
    return game


def test_adjust_add_and_subtract(engine, final_game):
    engine.projector.adjust(final_game.id, 13, 'BOTTOM_ISO', 'ADD', actor='scorekeeper')
    state = state_of(final_game.id)
    assert state.away_cups_remaining == 98
    assert state.status == 'FINAL'
    added = engine.events.latest(final_game.id)
    assert added.is_adjustment
    assert added.shooter_id == 13
    assert added.note == 'Admin adjustment'

    engine.projector.adjust(final_game.id, 11, 'TOP_REGULAR', 'subtract')
    state = state_of(final_game.id)
    assert state.away_cups_remaining == 99
    game_row = db.session.get(Game, final_game.id)
    assert game_row.status == 'FINAL'
    assert game_row.winner_team_id == HOME_TEAM

    rows = db.session.query(AdminAuditLog).filter_by(game_id=final_game.id).order_by(AdminAuditLog.id).all()
    assert [r.action for r in rows] == ['GAME_SCORE_ADJUST_ADD', 'GAME_SCORE_ADJUST_SUBTRACT']
    assert rows[0].actor == 'scorekeeper'
    assert rows[0].entity_id == added.id
    details = json.loads(rows[1].details)
    assert details['player_id'] == 11
    assert details['before_state']['away_cups_remaining'] == 98
    assert details['after_state']['away_cups_remaining'] == 99
    assert details['removed_event']['result_type'] == 'TOP_REGULAR'


def test_adjust_does_not_move_turns(engine, final_game):
    before = snapshot_of(final_game.id)
    engine.projector.adjust(final_game.id, 21, 'MISS', 'ADD')
    after = snapshot_of(final_game.id)
    assert after['turns'] == before['turns']
    assert after['state']['current_shooter_index'] == before['state']['current_shooter_index']


def test_adjust_rejections(engine, final_game):
    with pytest.raises(NotFoundError):
        engine.projector.adjust(final_game.id, 14, 'TOP_REGULAR', 'SUBTRACT')
    with pytest.raises(ValidationError):
        engine.projector.adjust(final_game.id, 99, 'TOP_REGULAR', 'ADD')
    with pytest.raises(ValidationError):
        engine.projector.adjust(final_game.id, 11, 'PULL_HOME', 'ADD')
    with pytest.raises(ValidationError):
        engine.projector.adjust(final_game.id, 11, 'TOP_REGULAR', 'MULTIPLY')
    assert db.session.query(AdminAuditLog).count() == 0


def test_adjust_requires_final_tracked_game(engine, game):
    with pytest.raises(StateConflictError):
        engine.projector.adjust(game.id, 11, 'TOP_REGULAR', 'ADD')

    legacy = engine.lifecycle.create_game(
        home_team_id=HOME_TEAM,
        away_team_id=AWAY_TEAM,
        home_lineup_ids=[31, 32],
        away_lineup_ids=[41, 42],
        stats_source='LEGACY',
    )
    engine.projector.finalize(legacy.id)
    with pytest.raises(StateConflictError):
        engine.projector.adjust(legacy.id, 31, 'TOP_REGULAR', 'ADD')


def test_describe_reports_current_turn(engine, game):
    shoot(engine, game.id, (MISS, 11))
    view = engine.projector.describe(game.id)
    assert view['game']['id'] == game.id
    assert view['state']['current_shooter_index'] == 1
    assert len(view['lineups']) == 12
    assert len(view['events']) == 1
    assert view['current_turn']['eligible_shooter_ids'] == HOME_LINEUP
    assert view['current_turn']['quota'] == 6
    assert view['current_turn']['shots_taken'] == 1
    with pytest.raises(NotFoundError):
        engine.projector.describe(12345)


def test_state_row_is_recreated(engine, game):
    db.session.query(GameState).filter_by(game_id=game.id).delete()
    db.session.commit()
    shoot(engine, game.id, (MISS, 11))
    assert state_of(game.id).current_shooter_index == 1
