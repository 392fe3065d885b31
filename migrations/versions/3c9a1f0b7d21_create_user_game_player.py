"""create user, game and player tables

Revision ID: 3c9a1f0b7d21
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9a1f0b7d21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.String(length=32), primary_key=True),
            sa.Column('code', sa.String(length=16), nullable=False),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('owner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='lobby'),
            sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
            sa.Column('winner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_game_code', 'game', ['code'])

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_id', sa.String(length=32), sa.ForeignKey('game.id'), nullable=False),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False),
            sa.Column('target_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
            sa.Column('eliminated', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('eliminated_order', sa.Integer(), nullable=True),
            sa.UniqueConstraint('game_id', 'user_id', name='uq_player_game_user'),
        )
        op.create_index('ix_player_game_id', 'player', ['game_id'])
        op.create_index('ix_player_user_id', 'player', ['user_id'])


def downgrade():
    op.drop_index('ix_player_user_id', table_name='player')
    op.drop_index('ix_player_game_id', table_name='player')
    op.drop_table('player')
    op.drop_index('ix_game_code', table_name='game')
    op.drop_table('game')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
