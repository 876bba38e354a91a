from rackscore.services.games.turns import TurnPlan
from helpers import AWAY_LINEUP, AWAY_TEAM, HOME_LINEUP, HOME_TEAM, MAKE, MISS, pull, shoot, turns_of


def test_first_turn_captures_home_lineup(engine, game):
    turn = engine.turns.current_turn(game)
    assert turn.turn_index == 1
    assert turn.offense_team_id == HOME_TEAM
    assert engine.turns.eligible_shooters(turn) == HOME_LINEUP
    assert engine.turns.quota(turn) == 6
    assert not engine.turns.turn_exhausted(turn)


def test_pulls_do_not_count_toward_quota(engine, game):
    pull(engine, game.id, 'PULL_AWAY', 2)
    shoot(engine, game.id, (MISS, 11), (MAKE, 12))
    turn = engine.turns.current_turn(game)
    assert engine.events.count_for_turn(turn.id) == 3
    assert engine.turns.shots_in_turn(turn) == 2

    shoot(engine, game.id, *[(MISS, s) for s in HOME_LINEUP[2:]])
    first = turns_of(game.id)[0]
    assert engine.turns.turn_exhausted(first)
    assert engine.turns.current_turn(game).offense_team_id == AWAY_TEAM


def test_matches_compares_offense_bonus_and_shooters(engine, game):
    turn = engine.turns.current_turn(game)
    assert engine.turns.matches(turn, TurnPlan(HOME_TEAM, False, HOME_LINEUP))
    assert not engine.turns.matches(turn, TurnPlan(HOME_TEAM, True, HOME_LINEUP))
    assert not engine.turns.matches(turn, TurnPlan(AWAY_TEAM, False, HOME_LINEUP))
    assert not engine.turns.matches(turn, TurnPlan(HOME_TEAM, False, HOME_LINEUP[:3]))


def test_advanced_turn_falls_back_to_lineup(engine, game):
    turn = engine.turns.advance(game, engine.turns.current_turn(game))
    assert turn.turn_index == 2
    assert turn.shooter_ids == []
    assert engine.turns.eligible_shooters(turn) == AWAY_LINEUP
    assert engine.turns.quota(turn) == len(AWAY_LINEUP)


def test_quota_defaults_without_lineup(engine):
    game = engine.lifecycle.create_game(home_team_id=8, away_team_id=9)
    turn = engine.turns.current_turn(game)
    assert engine.turns.eligible_shooters(turn) == []
    assert engine.turns.quota(turn) == engine.turns.default_lineup_size
