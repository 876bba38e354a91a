"""create game, lineup, state, turn, shot event and audit tables

Revision ID: 5c2e7a91d0b4
Revises:
Create Date: 2026-10-12 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e7a91d0b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # Databases created with `flask db-reset` already have the tables
    if 'game' in set(insp.get_table_names()):
        return

    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('home_team_id', sa.Integer(), nullable=False),
        sa.Column('away_team_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('stats_source', sa.String(length=16), nullable=False),
        sa.Column('winner_team_id', sa.Integer(), nullable=True),
        sa.Column('location', sa.String(length=128), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_game_home_team_id', 'game', ['home_team_id'])
    op.create_index('ix_game_away_team_id', 'game', ['away_team_id'])

    op.create_table(
        'game_lineup',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'player_id', name='uq_lineup_game_player'),
    )
    op.create_index('ix_game_lineup_game_id', 'game_lineup', ['game_id'])

    op.create_table(
        'game_state',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('possession_team_id', sa.Integer(), nullable=True),
        sa.Column('home_cups_remaining', sa.Integer(), nullable=False),
        sa.Column('away_cups_remaining', sa.Integer(), nullable=False),
        sa.Column('current_turn_number', sa.Integer(), nullable=False),
        sa.Column('current_shooter_index', sa.Integer(), nullable=False),
        sa.Column('phase', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id'),
    )

    op.create_table(
        'turn',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('turn_index', sa.Integer(), nullable=False),
        sa.Column('offense_team_id', sa.Integer(), nullable=False),
        sa.Column('is_bonus', sa.Boolean(), nullable=False),
        sa.Column('shooters_json', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'turn_index', name='uq_turn_game_index'),
    )
    op.create_index('ix_turn_game_id', 'turn', ['game_id'])

    op.create_table(
        'shot_event',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('turn_id', sa.Integer(), nullable=True),
        sa.Column('offense_team_id', sa.Integer(), nullable=False),
        sa.Column('defense_team_id', sa.Integer(), nullable=False),
        sa.Column('shooter_id', sa.Integer(), nullable=True),
        sa.Column('result_type', sa.String(length=16), nullable=False),
        sa.Column('cups_delta', sa.Integer(), nullable=False),
        sa.Column('remaining_cups_before', sa.Integer(), nullable=False),
        sa.Column('remaining_cups_after', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('is_adjustment', sa.Boolean(), nullable=False),
        sa.Column('note', sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.ForeignKeyConstraint(['turn_id'], ['turn.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shot_event_game_id', 'shot_event', ['game_id'])
    op.create_index('ix_shot_event_turn_id', 'shot_event', ['turn_id'])
    op.create_index('ix_shot_event_timestamp', 'shot_event', ['timestamp'])

    op.create_table(
        'admin_audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=True),
        sa.Column('actor', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admin_audit_log_game_id', 'admin_audit_log', ['game_id'])


def downgrade():
    op.drop_index('ix_admin_audit_log_game_id', table_name='admin_audit_log')
    op.drop_table('admin_audit_log')
    op.drop_index('ix_shot_event_timestamp', table_name='shot_event')
    op.drop_index('ix_shot_event_turn_id', table_name='shot_event')
    op.drop_index('ix_shot_event_game_id', table_name='shot_event')
    op.drop_table('shot_event')
    op.drop_index('ix_turn_game_id', table_name='turn')
    op.drop_table('turn')
    op.drop_table('game_state')
    op.drop_index('ix_game_lineup_game_id', table_name='game_lineup')
    op.drop_table('game_lineup')
    op.drop_index('ix_game_away_team_id', table_name='game')
    op.drop_index('ix_game_home_team_id', table_name='game')
    op.drop_table('game')
