"""add messages table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18 10:10:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '003'
down_revision: Union[str, None] = '002'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- messages ---
    op.create_table(
        'messages',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('sender_id', sa.String(length=64), nullable=False),
        sa.Column('receiver_id', sa.String(length=64), nullable=False),
        sa.Column('thread_key', sa.String(length=129), nullable=False),
        sa.Column('seq', sa.BigInteger(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('media_url', sa.String(length=512), nullable=True),
        sa.Column('media_type', sa.String(length=16), nullable=True),
        sa.Column('read', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('sender_id <> receiver_id', name='chk_messages_not_self'),
        sa.ForeignKeyConstraint(['sender_id'], ['profiles.id'], name='fk_messages_sender', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['profiles.id'], name='fk_messages_receiver', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('thread_key', 'seq', name='uq_messages_thread_seq')
    )
    op.create_index('idx_messages_thread_created', 'messages', ['thread_key', 'created_at'], unique=False)
    op.create_index('idx_messages_receiver_read', 'messages', ['receiver_id', 'read'], unique=False)


def downgrade() -> None:
    op.drop_table('messages')
