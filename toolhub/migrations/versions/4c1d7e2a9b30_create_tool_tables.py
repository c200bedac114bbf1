"""create_tool_tables

Revision ID: 4c1d7e2a9b30
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1d7e2a9b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'tool_definitions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('kind', sa.String(length=20), nullable=False, server_default='LOCAL'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='ENABLED'),
        sa.Column('config', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_index('idx_tool_definitions_kind', 'tool_definitions', ['kind'], unique=False)
    op.create_index('idx_tool_definitions_status', 'tool_definitions', ['status'], unique=False)

    op.create_table(
        'markets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('url', sa.String(length=1000), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('auth_config', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='ENABLED'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_markets_status', 'markets', ['status'], unique=False)

    op.create_table(
        'market_catalog_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('market_id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('version', sa.String(length=100), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('loaded', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('linked_tool_id', sa.Integer(), nullable=True),
        sa.Column('linked_tool_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.ForeignKeyConstraint(['market_id'], ['markets.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('market_id', 'external_id', name='uq_catalog_market_external'),
    )
    op.create_index('idx_catalog_market_id', 'market_catalog_entries', ['market_id'], unique=False)
    op.create_index('idx_catalog_loaded', 'market_catalog_entries', ['market_id', 'loaded'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_catalog_loaded', table_name='market_catalog_entries')
    op.drop_index('idx_catalog_market_id', table_name='market_catalog_entries')
    op.drop_table('market_catalog_entries')
    op.drop_index('idx_markets_status', table_name='markets')
    op.drop_table('markets')
    op.drop_index('idx_tool_definitions_status', table_name='tool_definitions')
    op.drop_index('idx_tool_definitions_kind', table_name='tool_definitions')
    op.drop_table('tool_definitions')
