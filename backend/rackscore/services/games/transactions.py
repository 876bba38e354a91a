from contextlib import contextmanager

from rackscore.models import Game
from .errors import NotFoundError


@contextmanager
def atomic(session):
    """Commit everything written inside the block, or nothing at all."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def lock_game(session, game_id) -> Game:
    """Load a game row with a write lock so mutations on one game serialize.

    Backends without row locks (SQLite) ignore FOR UPDATE and rely on their
    database-level write lock instead.
    """
    game = session.query(Game).filter(Game.id == game_id).with_for_update().first()
    if game is None:
        raise NotFoundError('Game not found')
    return game
