from rackscore.models import GameLineup


class LineupDirectory:
    """Lineup lookup for a game, backed by the GameLineup rows written at setup."""

    def __init__(self, session):
        self.session = session

    def active_lineup(self, game_id, team_id):
        """Ordered player ids of a team's active lineup."""
        rows = (
            self.session.query(GameLineup)
            .filter_by(game_id=game_id, team_id=team_id, is_active=True)
            .order_by(GameLineup.order_index.asc(), GameLineup.id.asc())
            .all()
        )
        return [row.player_id for row in rows]

    def team_of(self, game_id, player_id):
        row = self.session.query(GameLineup).filter_by(game_id=game_id, player_id=player_id).first()
        return row.team_id if row else None

    def for_game(self, game_id):
        return (
            self.session.query(GameLineup)
            .filter_by(game_id=game_id)
            .order_by(GameLineup.team_id.asc(), GameLineup.order_index.asc())
            .all()
        )

    def add(self, game_id, team_id, player_ids):
        for index, player_id in enumerate(player_ids):
            self.session.add(GameLineup(
                game_id=game_id,
                team_id=team_id,
                player_id=player_id,
                order_index=index,
            ))
