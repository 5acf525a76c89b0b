"""initial tables: kv_entries, presets, banned_users

Revision ID: 5e1a7c2d9b40
Revises:
Create Date: 2025-10-02
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e1a7c2d9b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'kv_entries',
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )
    op.create_table(
        'presets',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('author_discord_id', sa.String(length=32), nullable=True),
        sa.Column('author_name', sa.String(length=120), nullable=True),
        sa.Column('vote_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_presets_status'), 'presets', ['status'])
    op.create_index(op.f('ix_presets_author_discord_id'), 'presets', ['author_discord_id'])
    op.create_table(
        'banned_users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('discord_id', sa.String(length=32), nullable=True),
        sa.Column('xivauth_id', sa.String(length=64), nullable=True),
        sa.Column('username', sa.String(length=120), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('moderator_discord_id', sa.String(length=32), nullable=False),
        sa.Column('banned_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('unbanned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('unban_moderator_discord_id', sa.String(length=32), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_banned_users_discord_active', 'banned_users', ['discord_id', 'unbanned_at']
    )


def downgrade() -> None:
    op.drop_index('ix_banned_users_discord_active', table_name='banned_users')
    op.drop_table('banned_users')
    op.drop_index(op.f('ix_presets_author_discord_id'), table_name='presets')
    op.drop_index(op.f('ix_presets_status'), table_name='presets')
    op.drop_table('presets')
    op.drop_table('kv_entries')
