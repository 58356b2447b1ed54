"""Initial schema: participants, steps_data, daily_steps_cache

Revision ID: 001_initial
Revises:
Create Date: 2025-10-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'participants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('profile_image_url', sa.Text(), nullable=True),
        sa.Column('gender', sa.String(20), nullable=True),
        sa.Column('google_access_token', sa.Text(), nullable=True),
        sa.Column('google_refresh_token', sa.Text(), nullable=True),
        sa.Column('google_token_expiry', sa.DateTime(), nullable=True),
        sa.Column('google_token_scope', sa.Text(), nullable=True),
        sa.Column('google_token_type', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_participants_email', 'participants', ['email'], unique=True)

    op.create_table(
        'steps_data',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('participant_id', sa.String(36), sa.ForeignKey('participants.id'), nullable=False),
        sa.Column('steps', sa.Integer(), nullable=True),
        sa.Column('daily_steps', sa.JSON(), nullable=True),
        sa.Column('daily_steps_updated_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='ready'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('error_kind', sa.String(20), nullable=True),
        sa.Column('token_expired', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        sa.Column('refresh_started_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_steps_data_participant_id', 'steps_data', ['participant_id'], unique=True)

    op.create_table(
        'daily_steps_cache',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('participant_id', sa.String(36), sa.ForeignKey('participants.id'), nullable=False),
        sa.Column('daily_steps', sa.JSON(), nullable=False),
        sa.Column('last_fetched_at', sa.DateTime(), nullable=True),
        sa.Column('last_successful_fetch_at', sa.DateTime(), nullable=True),
        sa.Column('error_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index(
        'ix_daily_steps_cache_participant_id', 'daily_steps_cache', ['participant_id'], unique=True
    )


def downgrade() -> None:
    op.drop_index('ix_daily_steps_cache_participant_id', 'daily_steps_cache')
    op.drop_table('daily_steps_cache')

    op.drop_index('ix_steps_data_participant_id', 'steps_data')
    op.drop_table('steps_data')

    op.drop_index('ix_participants_email', 'participants')
    op.drop_table('participants')
