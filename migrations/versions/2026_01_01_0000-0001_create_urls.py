"""Create urls table

Revision ID: 0001_create_urls
Revises:
Create Date: 2026-01-01 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '0001_create_urls'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the urls table:
    - id: internal auto-increment key
    - short_code: public code, unique index (collision backstop)
    - original_url, created_at, clicks
    """
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    # Workers create the table on startup too; skip if one already did
    if 'urls' in existing_tables:
        return

    op.create_table(
        'urls',
        sa.Column(
            'id',
            sa.BigInteger().with_variant(sa.Integer(), 'sqlite'),
            nullable=False,
            autoincrement=True,
        ),
        sa.Column('original_url', sa.String(length=2048), nullable=False),
        sa.Column('short_code', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_index(
        'ix_urls_short_code',
        'urls',
        ['short_code'],
        unique=True
    )


def downgrade() -> None:
    op.drop_index('ix_urls_short_code', table_name='urls')
    op.drop_table('urls')
