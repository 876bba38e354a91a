from rackscore import db
from rackscore.services.games.results import GamePhase, GameStatus, StatsSource
from datetime import datetime, timezone
import json


def utcnow():
    # Naive UTC so values compare cleanly after a round trip through SQLite
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    home_team_id = db.Column(db.Integer, nullable=False, index=True)
    away_team_id = db.Column(db.Integer, nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=GameStatus.IN_PROGRESS.value)
    stats_source = db.Column(db.String(16), nullable=False, default=StatsSource.TRACKED.value)
    winner_team_id = db.Column(db.Integer, nullable=True)
    location = db.Column(db.String(128), nullable=True)
    scheduled_at = db.Column(db.DateTime, nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)
    ended_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    state = db.relationship('GameState', back_populates='game', uselist=False)

    def other_team(self, team_id):
        return self.away_team_id if team_id == self.home_team_id else self.home_team_id

    def has_team(self, team_id):
        return team_id in (self.home_team_id, self.away_team_id)

    @property
    def is_final(self):
        return self.status == GameStatus.FINAL

    def to_dict(self):
        return {
            'id': self.id,
            'home_team_id': self.home_team_id,
            'away_team_id': self.away_team_id,
            'status': self.status,
            'stats_source': self.stats_source,
            'winner_team_id': self.winner_team_id,
            'location': self.location,
            'scheduled_at': _iso(self.scheduled_at),
            'started_at': _iso(self.started_at),
            'ended_at': _iso(self.ended_at),
        }


class GameLineup(db.Model):
    __tablename__ = 'game_lineup'
    __table_args__ = (db.UniqueConstraint('game_id', 'player_id', name='uq_lineup_game_player'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    team_id = db.Column(db.Integer, nullable=False)
    player_id = db.Column(db.Integer, nullable=False)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            'team_id': self.team_id,
            'player_id': self.player_id,
            'order_index': self.order_index,
            'is_active': self.is_active,
        }


class GameState(db.Model):
    __tablename__ = 'game_state'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, unique=True)
    possession_team_id = db.Column(db.Integer, nullable=True)
    home_cups_remaining = db.Column(db.Integer, nullable=False, default=100)
    away_cups_remaining = db.Column(db.Integer, nullable=False, default=100)
    current_turn_number = db.Column(db.Integer, nullable=False, default=1)
    current_shooter_index = db.Column(db.Integer, nullable=False, default=0)
    phase = db.Column(db.String(16), nullable=False, default=GamePhase.REGULATION.value)
    status = db.Column(db.String(16), nullable=False, default=GameStatus.IN_PROGRESS.value)

    game = db.relationship('Game', back_populates='state')

    def to_dict(self):
        return {
            'possession_team_id': self.possession_team_id,
            'home_cups_remaining': self.home_cups_remaining,
            'away_cups_remaining': self.away_cups_remaining,
            'current_turn_number': self.current_turn_number,
            'current_shooter_index': self.current_shooter_index,
            'phase': self.phase,
            'status': self.status,
        }


class Turn(db.Model):
    __tablename__ = 'turn'
    __table_args__ = (db.UniqueConstraint('game_id', 'turn_index', name='uq_turn_game_index'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    turn_index = db.Column(db.Integer, nullable=False)
    offense_team_id = db.Column(db.Integer, nullable=False)
    is_bonus = db.Column(db.Boolean, nullable=False, default=False)
    shooters_json = db.Column(db.Text, nullable=True)  # JSON-encoded list of player ids

    def __init__(self, shooter_ids=None, **kwargs):
        super(Turn, self).__init__(**kwargs)
        if shooter_ids is not None:
            self.shooters_json = json.dumps(list(shooter_ids))

    @property
    def shooter_ids(self):
        try:
            return list(json.loads(self.shooters_json)) if self.shooters_json else []
        except ValueError:
            return []

    def to_dict(self):
        return {
            'id': self.id,
            'turn_index': self.turn_index,
            'offense_team_id': self.offense_team_id,
            'is_bonus': self.is_bonus,
            'shooter_ids': self.shooter_ids,
        }


class ShotEvent(db.Model):
    __tablename__ = 'shot_event'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    turn_id = db.Column(db.Integer, db.ForeignKey('turn.id'), nullable=True, index=True)
    offense_team_id = db.Column(db.Integer, nullable=False)
    defense_team_id = db.Column(db.Integer, nullable=False)
    shooter_id = db.Column(db.Integer, nullable=True)
    result_type = db.Column(db.String(16), nullable=False)
    cups_delta = db.Column(db.Integer, nullable=False, default=0)
    remaining_cups_before = db.Column(db.Integer, nullable=False)
    remaining_cups_after = db.Column(db.Integer, nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, index=True)
    is_adjustment = db.Column(db.Boolean, nullable=False, default=False)
    note = db.Column(db.String(128), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'turn_id': self.turn_id,
            'offense_team_id': self.offense_team_id,
            'defense_team_id': self.defense_team_id,
            'shooter_id': self.shooter_id,
            'result_type': self.result_type,
            'cups_delta': self.cups_delta,
            'remaining_cups_before': self.remaining_cups_before,
            'remaining_cups_after': self.remaining_cups_after,
            'timestamp': _iso(self.timestamp),
            'is_adjustment': self.is_adjustment,
            'note': self.note,
        }


class AdminAuditLog(db.Model):
    __tablename__ = 'admin_audit_log'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=True, index=True)
    actor = db.Column(db.String(64), nullable=True)
    action = db.Column(db.String(64), nullable=False)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    details = db.Column(db.Text, nullable=True)  # JSON-encoded
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'actor': self.actor,
            'action': self.action,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'details': json.loads(self.details) if self.details else None,
            'created_at': _iso(self.created_at),
        }
