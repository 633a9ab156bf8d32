"""Create preferences and manga_sync tables

Revision ID: 001_create_tracking_tables
Revises:
Create Date: 2026-10-18 10:00:00.000000

This migration creates the two tables used by tracker services:

    preferences  - key/value store for tracker credentials and OAuth tokens
    manga_sync   - local manga bound to remote tracker library entries

A manga can be bound at most once per tracker service.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_tracking_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Create preferences and manga_sync tables.

    manga_sync personal fields:
        - last_chapter_read: Float (fractional chapters allowed)
        - score: Float in the tracker's scale
        - status: Tracker status code
        - started_reading_date / finished_reading_date: epoch ms, 0 = unset
    """
    op.create_table(
        'preferences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_preferences_key', 'preferences', ['key'], unique=True)

    op.create_table(
        'manga_sync',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('manga_id', sa.Integer(), nullable=False),
        sa.Column('sync_id', sa.Integer(), nullable=False),
        sa.Column('media_id', sa.Integer(), nullable=False),
        sa.Column('library_id', sa.BigInteger(), nullable=True),
        sa.Column('title', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('total_chapters', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tracking_url', sa.String(length=1000), nullable=False, server_default=''),
        sa.Column('last_chapter_read', sa.Float(), nullable=False, server_default='0'),
        sa.Column('score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_reading_date', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('finished_reading_date', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('manga_id', 'sync_id', name='uq_manga_sync_manga_service')
    )
    op.create_index('ix_manga_sync_manga_id', 'manga_sync', ['manga_id'])


def downgrade() -> None:
    """
    Drop manga_sync and preferences tables.

    WARNING: This deletes all tracker bindings and stored tracker logins.
    """
    op.drop_index('ix_manga_sync_manga_id', table_name='manga_sync')
    op.drop_table('manga_sync')

    op.drop_index('ix_preferences_key', table_name='preferences')
    op.drop_table('preferences')
