"""initial messaging game schema: tables, presence, messages, reactions, challenges, badges

Revision ID: 4c7d2e91a0b3
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7d2e91a0b3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'admin',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('secret_table_code', sa.String(length=10), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'staff',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('table_code', sa.String(length=10), nullable=False),
        sa.Column('permissions', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_staff_table_code', 'staff', ['table_code'], unique=True)

    op.create_table(
        'game_table',
        sa.Column('id', sa.String(length=10), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_game_table_code', 'game_table', ['code'], unique=True)

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('table_id', sa.String(length=10), sa.ForeignKey('game_table.id', ondelete='CASCADE'), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('last_active', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_user_table_id', 'user', ['table_id'])
    op.create_index('ix_user_last_active', 'user', ['last_active'])

    op.create_table(
        'game_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('paused_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'countdown',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('message', sa.String(length=200), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ends_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'message',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('from_table_id', sa.String(length=10), nullable=True),
        sa.Column('to_table_id', sa.String(length=10), nullable=False),
        sa.Column('sender_name', sa.String(length=100), nullable=False),
        sa.Column('public_sender_name', sa.String(length=100), nullable=True),
        sa.Column('is_anonymous', sa.Boolean(), nullable=False),
        sa.Column('is_broadcast', sa.Boolean(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('reactions_heart', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reactions_thumbsup', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reactions_fire', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reactions_laugh', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False),
    )
    op.create_index('ix_message_from_table_id', 'message', ['from_table_id'])
    op.create_index('ix_message_to_table_id', 'message', ['to_table_id'])
    op.create_index('ix_message_timestamp', 'message', ['timestamp'])

    op.create_table(
        'message_reaction',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('message_id', sa.String(length=64), sa.ForeignKey('message.id', ondelete='CASCADE'), nullable=False),
        sa.Column('table_id', sa.String(length=10), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('message_id', 'table_id', name='uq_message_reaction_table'),
    )
    op.create_index('ix_message_reaction_message_id', 'message_reaction', ['message_id'])

    op.create_table(
        'challenge',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('scoring_type', sa.String(length=32), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('ends_at', sa.DateTime(), nullable=False),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('badge_name', sa.String(length=100), nullable=False),
        sa.Column('badge_emoji', sa.String(length=32), nullable=False),
        sa.Column('winner', sa.String(length=10), nullable=True),
        sa.Column('results', sa.Text(), nullable=True),
        sa.Column('participants', sa.Text(), nullable=True),
    )
    op.create_index('ix_challenge_active', 'challenge', ['active'])

    op.create_table(
        'badge_award',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('table_id', sa.String(length=10), nullable=False),
        sa.Column('challenge_id', sa.String(length=64), sa.ForeignKey('challenge.id'), nullable=False, unique=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('emoji', sa.String(length=32), nullable=False),
        sa.Column('challenge_title', sa.String(length=200), nullable=False),
        sa.Column('awarded_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_badge_award_table_id', 'badge_award', ['table_id'])


def downgrade():
    op.drop_index('ix_badge_award_table_id', table_name='badge_award')
    op.drop_table('badge_award')
    op.drop_index('ix_challenge_active', table_name='challenge')
    op.drop_table('challenge')
    op.drop_index('ix_message_reaction_message_id', table_name='message_reaction')
    op.drop_table('message_reaction')
    op.drop_index('ix_message_timestamp', table_name='message')
    op.drop_index('ix_message_to_table_id', table_name='message')
    op.drop_index('ix_message_from_table_id', table_name='message')
    op.drop_table('message')
    op.drop_table('countdown')
    op.drop_table('game_session')
    op.drop_index('ix_user_last_active', table_name='user')
    op.drop_index('ix_user_table_id', table_name='user')
    op.drop_table('user')
    op.drop_index('ix_game_table_code', table_name='game_table')
    op.drop_table('game_table')
    op.drop_index('ix_staff_table_code', table_name='staff')
    op.drop_table('staff')
    op.drop_table('admin')
