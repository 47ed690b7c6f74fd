"""initial_snapshot_schema

Revision ID: 3f1c9d2a7b10
Revises:
Create Date: 2026-10-19 10:12:41.503118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9d2a7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('game_metadata',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('game_id', sa.String(), nullable=False),
    sa.Column('sport_key', sa.String(), nullable=False),
    sa.Column('sport_title', sa.String(), nullable=True),
    sa.Column('home_team', sa.String(), nullable=False),
    sa.Column('away_team', sa.String(), nullable=False),
    sa.Column('commence_time', sa.DateTime(timezone=True), nullable=False),
    sa.Column('status', sa.String(), nullable=False),
    sa.Column('opening_line_captured', sa.Boolean(), nullable=False),
    sa.Column('closing_line_captured', sa.Boolean(), nullable=False),
    sa.Column('last_snapshot_time', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('game_metadata', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_game_metadata_game_id'), ['game_id'], unique=True)
        batch_op.create_index(batch_op.f('ix_game_metadata_sport_key'), ['sport_key'], unique=False)
        batch_op.create_index('ix_game_metadata_sport_status', ['sport_key', 'status'], unique=False)

    op.create_table('odds_snapshots',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('game_id', sa.String(), nullable=False),
    sa.Column('sport_key', sa.String(), nullable=False),
    sa.Column('commence_time', sa.DateTime(timezone=True), nullable=False),
    sa.Column('snapshot_type', sa.String(), nullable=False),
    sa.Column('snapshot_timestamp', sa.DateTime(timezone=True), nullable=False),
    sa.Column('odds_data', sa.JSON(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('odds_snapshots', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_odds_snapshots_game_id'), ['game_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_odds_snapshots_sport_key'), ['sport_key'], unique=False)
        batch_op.create_index('ix_odds_snapshots_game_timestamp', ['game_id', 'snapshot_timestamp'], unique=False)
        batch_op.create_index('ix_odds_snapshots_sport_timestamp', ['sport_key', 'snapshot_timestamp'], unique=False)

    op.create_table('user_saved_bets',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('user_id', sa.String(), nullable=False),
    sa.Column('game_id', sa.String(), nullable=False),
    sa.Column('sport_key', sa.String(), nullable=False),
    sa.Column('bookmaker_key', sa.String(), nullable=False),
    sa.Column('market_key', sa.String(), nullable=False),
    sa.Column('outcome_name', sa.String(), nullable=False),
    sa.Column('locked_price', sa.Float(), nullable=False),
    sa.Column('locked_point', sa.Float(), nullable=True),
    sa.Column('edited_price', sa.Float(), nullable=True),
    sa.Column('edited_point', sa.Float(), nullable=True),
    sa.Column('notes', sa.String(), nullable=True),
    sa.Column('status', sa.String(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('user_saved_bets', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_saved_bets_game_id'), ['game_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_user_saved_bets_user_id'), ['user_id'], unique=False)

    op.create_table('user_profiles',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('user_id', sa.String(), nullable=False),
    sa.Column('telegram_id', sa.String(), nullable=True),
    sa.Column('display_name', sa.String(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('user_profiles', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_profiles_user_id'), ['user_id'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table('user_profiles', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_user_profiles_user_id'))

    op.drop_table('user_profiles')
    with op.batch_alter_table('user_saved_bets', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_user_saved_bets_user_id'))
        batch_op.drop_index(batch_op.f('ix_user_saved_bets_game_id'))

    op.drop_table('user_saved_bets')
    with op.batch_alter_table('odds_snapshots', schema=None) as batch_op:
        batch_op.drop_index('ix_odds_snapshots_sport_timestamp')
        batch_op.drop_index('ix_odds_snapshots_game_timestamp')
        batch_op.drop_index(batch_op.f('ix_odds_snapshots_sport_key'))
        batch_op.drop_index(batch_op.f('ix_odds_snapshots_game_id'))

    op.drop_table('odds_snapshots')
    with op.batch_alter_table('game_metadata', schema=None) as batch_op:
        batch_op.drop_index('ix_game_metadata_sport_status')
        batch_op.drop_index(batch_op.f('ix_game_metadata_sport_key'))
        batch_op.drop_index(batch_op.f('ix_game_metadata_game_id'))

    op.drop_table('game_metadata')
