"""initial schema: profiles

Revision ID: 001
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- profiles ---
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('username', sa.String(length=30), nullable=False),
        sa.Column('city', sa.String(length=128), nullable=False),
        sa.Column('bio', sa.Text(), nullable=False),
        sa.Column('interests', sa.JSON(), nullable=False),
        sa.Column('instagram_url', sa.String(length=255), nullable=True),
        sa.Column('photo_url', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_profiles_username')
    )
    op.create_index('idx_profiles_created', 'profiles', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('profiles')
