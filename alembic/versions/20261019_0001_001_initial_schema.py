"""Initial schema for podcasts and episodes

Revision ID: 001
Revises:
Create Date: 2026-10-19

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
    op.create_table(
        'podcasts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('feed_url', sa.String(2048), unique=True, nullable=False),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('image_url', sa.String(2048), nullable=False),
        sa.Column('last_updated', sa.String(64), nullable=False),
        sa.Column('is_subscribed', sa.Boolean, default=True),
    )
    op.create_index('ix_podcasts_feed_url', 'podcasts', ['feed_url'])

    op.create_table(
        'episodes',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            'podcast_id',
            sa.Integer,
            sa.ForeignKey('podcasts.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('guid', sa.String(2048), nullable=False),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('description', sa.Text, nullable=False),
        sa.Column('media_url', sa.String(2048), nullable=False),
        sa.Column('media_type', sa.String(64), nullable=False),
        sa.Column('release_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration', sa.String(32), nullable=False),
        sa.UniqueConstraint('podcast_id', 'guid', name='uq_episode_podcast_guid'),
    )
    op.create_index('ix_episodes_podcast_id', 'episodes', ['podcast_id'])


def downgrade() -> None:
    op.drop_index('ix_episodes_podcast_id', table_name='episodes')
    op.drop_table('episodes')
    op.drop_index('ix_podcasts_feed_url', table_name='podcasts')
    op.drop_table('podcasts')
