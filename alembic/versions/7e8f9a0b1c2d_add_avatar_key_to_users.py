"""add avatar_key to users

Revision ID: 7e8f9a0b1c2d
Revises: 3c1d2e4f5a6b
Create Date: 2025-12-10 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '7e8f9a0b1c2d'
down_revision = '3c1d2e4f5a6b'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Object key of the avatar; URLs are now built at read time from the public base
    op.add_column('users', sa.Column('avatar_key', sa.String(length=500), nullable=True))
    # avatar_url stays for rows written before this revision. It is never
    # backfilled: legacy URLs are rewritten when read.


def downgrade() -> None:
    op.drop_column('users', 'avatar_key')
