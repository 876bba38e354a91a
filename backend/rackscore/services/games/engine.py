from .event_log import EventLog
from .lifecycle import GameLifecycle
from .lineups import LineupDirectory
from .phases import PhaseController
from .projector import StateProjector
from .turns import TurnManager


class ScoringEngine:
    """Wires the scoring components around one session.

    Built once per process by ``create_app`` and handed to the routes through
    ``app.extensions['scoring']``.
    """

    def __init__(self, session, default_lineup_size: int = 6):
        self.session = session
        self.events = EventLog(session)
        self.lineups = LineupDirectory(session)
        self.turns = TurnManager(session, self.events, self.lineups, default_lineup_size)
        self.phases = PhaseController(self.turns)
        self.projector = StateProjector(session, self.events, self.turns, self.phases, self.lineups)
        self.lifecycle = GameLifecycle(session, self.turns, self.lineups)


def build_engine(session, default_lineup_size: int = 6) -> ScoringEngine:
    return ScoringEngine(session, default_lineup_size=default_lineup_size)
