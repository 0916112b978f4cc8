"""Create posts table

Revision ID: 001_create_posts
Revises:
Create Date: 2025-06-19 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001_create_posts'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    connection = op.get_bind()
    inspector = sa.inspect(connection)

    # Tables created by create_tables() on startup are left as they are
    if 'posts' in inspector.get_table_names():
        return

    op.create_table('posts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('author', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_posts_created_at', 'posts', ['created_at'], unique=False)
    op.create_index('idx_posts_author', 'posts', ['author'], unique=False)
    op.create_index(
        'idx_posts_created_at_id',
        'posts',
        [sa.text('created_at DESC'), sa.text('id DESC')],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index('idx_posts_created_at_id', table_name='posts')
    op.drop_index('idx_posts_author', table_name='posts')
    op.drop_index('idx_posts_created_at', table_name='posts')
    op.drop_table('posts')
