from rackscore import db
from rackscore.models import GameState, Turn

HOME_TEAM = 1
AWAY_TEAM = 2
HOME_LINEUP = [11, 12, 13, 14, 15, 16]
AWAY_LINEUP = [21, 22, 23, 24, 25, 26]

MAKE = 'TOP_REGULAR'
MISS = 'MISS'


def shoot(engine, game_id, *shots):
    for result, shooter in shots:
        engine.projector.apply_event(game_id, result, shooter_id=shooter)


def pull(engine, game_id, result, count):
    return engine.projector.apply_event(game_id, result, count=count)


def state_of(game_id) -> GameState:
    return db.session.query(GameState).filter_by(game_id=game_id).one()


def turns_of(game_id):
    return db.session.query(Turn).filter_by(game_id=game_id).order_by(Turn.turn_index).all()


def clear_away_rack(engine, game_id, stuff_makes=0):
    """Home clears the away rack on its first turn with `stuff_makes` extra makes."""
    pull(engine, game_id, 'PULL_AWAY', 99)
    shots = [(MAKE, HOME_LINEUP[0])]
    shots += [(MAKE, shooter) for shooter in HOME_LINEUP[1:1 + stuff_makes]]
    shots += [(MISS, shooter) for shooter in HOME_LINEUP[1 + stuff_makes:]]
    shoot(engine, game_id, *shots)
