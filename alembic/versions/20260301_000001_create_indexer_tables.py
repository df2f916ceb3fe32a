"""Create indexer tables

Revision ID: 20260301_000001
Revises: 
Create Date: 2026-03-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260301_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ETHER = sa.DECIMAL(36, 18)


def upgrade() -> None:
    # Watermark (singleton)
    op.create_table(
        'indexer_state',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('last_indexed_block', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('last_block_hash', sa.String(66), nullable=True),
        sa.Column('confirmation_depth', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('endpoint_cursor', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )

    # Launched tokens
    op.create_table(
        'tokens',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token_address', sa.String(42), nullable=False),
        sa.Column('amm_address', sa.String(42), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('symbol', sa.String(20), nullable=False),
        sa.Column('creator_address', sa.String(42), nullable=False),
        sa.Column('liquidity_percent', sa.Integer(), nullable=False),
        sa.Column('initial_liquidity_eth', ETHER, nullable=False),
        sa.Column('launch_price_eth', ETHER, nullable=False, server_default='0'),
        sa.Column('current_eth_reserve', ETHER, nullable=False, server_default='0'),
        sa.Column('current_token_reserve', ETHER, nullable=False, server_default='0'),
        sa.Column('total_volume_eth', ETHER, nullable=False, server_default='0'),
        sa.Column('holder_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('block_hash', sa.String(66), nullable=False),
        sa.Column('launched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('total_volume_eth >= 0', name='check_tokens_volume_non_negative'),
    )
    op.create_index('ix_tokens_token_address', 'tokens', ['token_address'], unique=True)
    op.create_index('ix_tokens_amm_address', 'tokens', ['amm_address'], unique=True)
    op.create_index('ix_tokens_block_number', 'tokens', ['block_number'])

    # Swap log
    op.create_table(
        'swaps',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token_address', sa.String(42), nullable=False),
        sa.Column('amm_address', sa.String(42), nullable=False),
        sa.Column('user_address', sa.String(42), nullable=False),
        sa.Column('eth_in', ETHER, nullable=False, server_default='0'),
        sa.Column('token_in', ETHER, nullable=False, server_default='0'),
        sa.Column('eth_out', ETHER, nullable=False, server_default='0'),
        sa.Column('token_out', ETHER, nullable=False, server_default='0'),
        sa.Column('tx_hash', sa.String(66), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('block_hash', sa.String(66), nullable=False),
        sa.Column('swapped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['token_address'], ['tokens.token_address'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_swaps_tx_hash', 'swaps', ['tx_hash'], unique=True)
    op.create_index('ix_swaps_user_address', 'swaps', ['user_address'])
    op.create_index('ix_swaps_block_number', 'swaps', ['block_number'])
    op.create_index('ix_swaps_token_block', 'swaps', ['token_address', 'block_number'])

    # Operator skip list
    op.create_table(
        'skip_blocks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('indexer_type', sa.String(20), nullable=False, server_default='all'),
        sa.Column('reason', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('block_number', 'indexer_type', name='uq_skip_blocks_block_type'),
    )
    op.create_index('ix_skip_blocks_block_number', 'skip_blocks', ['block_number'])


def downgrade() -> None:
    op.drop_index('ix_skip_blocks_block_number', 'skip_blocks')
    op.drop_table('skip_blocks')

    op.drop_index('ix_swaps_token_block', 'swaps')
    op.drop_index('ix_swaps_block_number', 'swaps')
    op.drop_index('ix_swaps_user_address', 'swaps')
    op.drop_index('ix_swaps_tx_hash', 'swaps')
    op.drop_table('swaps')

    op.drop_index('ix_tokens_block_number', 'tokens')
    op.drop_index('ix_tokens_amm_address', 'tokens')
    op.drop_index('ix_tokens_token_address', 'tokens')
    op.drop_table('tokens')

    op.drop_table('indexer_state')
