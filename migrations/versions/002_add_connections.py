"""add connection_requests and connections tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 10:05:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- connection_requests ---
    op.create_table(
        'connection_requests',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('sender_id', sa.String(length=64), nullable=False),
        sa.Column('receiver_id', sa.String(length=64), nullable=False),
        sa.Column('sender_name', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=16), server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('sender_id <> receiver_id', name='chk_connection_requests_not_self'),
        sa.ForeignKeyConstraint(['sender_id'], ['profiles.id'], name='fk_connection_requests_sender', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['profiles.id'], name='fk_connection_requests_receiver', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sender_id', 'receiver_id', name='uq_connection_requests_pair_direction')
    )
    op.create_index('idx_connection_requests_receiver', 'connection_requests', ['receiver_id', 'status'], unique=False)
    op.create_index('idx_connection_requests_sender', 'connection_requests', ['sender_id', 'status'], unique=False)

    # --- connections ---
    op.create_table(
        'connections',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user1_id', sa.String(length=64), nullable=False),
        sa.Column('user2_id', sa.String(length=64), nullable=False),
        sa.Column('user_low', sa.String(length=64), nullable=False),
        sa.Column('user_high', sa.String(length=64), nullable=False),
        sa.Column('request_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('user1_id <> user2_id', name='chk_connections_not_self'),
        sa.ForeignKeyConstraint(['user1_id'], ['profiles.id'], name='fk_connections_user1', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user2_id'], ['profiles.id'], name='fk_connections_user2', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['request_id'], ['connection_requests.id'], name='fk_connections_request', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_low', 'user_high', name='uq_connections_pair')
    )
    op.create_index('idx_connections_user1', 'connections', ['user1_id'], unique=False)
    op.create_index('idx_connections_user2', 'connections', ['user2_id'], unique=False)


def downgrade() -> None:
    op.drop_table('connections')
    op.drop_table('connection_requests')
