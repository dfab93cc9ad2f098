"""Initial database schema

Revision ID: 001_initial
Revises:
Create Date: 2026-09-14

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('external_user_id', sa.String(255), nullable=False),
        sa.Column('wallet_address', sa.String(42), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wallet_address'),
    )
    op.create_index('ix_users_external_user_id', 'users', ['external_user_id'], unique=True)

    # Auctions table (primary key is the on-chain auction id)
    op.create_table(
        'auctions',
        sa.Column('id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('creator_user_id', sa.String(255), nullable=True),
        sa.Column('creator_wallet', sa.String(42), nullable=True),
        sa.Column('host_wallet', sa.String(42), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reserve_price_wei', sa.String(78), nullable=False, server_default='0'),
        sa.Column('highest_bid_wei', sa.String(78), nullable=False, server_default='0'),
        sa.Column('highest_bidder', sa.String(42), nullable=True),
        sa.Column('start_block', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('end_block', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('meeting_duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('ended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('auto_ended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('nft_token_id', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('meeting_scheduled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('processing_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_processing_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_auctions_creator_wallet', 'auctions', ['creator_wallet'])
    op.create_index('ix_auctions_host_wallet', 'auctions', ['host_wallet'])

    # Meetings table (one per auction)
    op.create_table(
        'meetings',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('auction_id', sa.BigInteger(), nullable=False),
        sa.Column('room_id', sa.String(255), nullable=False),
        sa.Column('room_url', sa.String(512), nullable=False),
        sa.Column('room_config', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('creator_access_token', sa.Text(), nullable=False),
        sa.Column('winner_access_token', sa.Text(), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['auction_id'], ['auctions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('auction_id'),
    )

    # Access events table (append-only)
    op.create_table(
        'meeting_access_events',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('auction_id', sa.BigInteger(), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('wallet_address', sa.String(42), nullable=False),
        sa.Column('nft_token_id', sa.BigInteger(), nullable=False),
        sa.Column('transaction_hash', sa.String(66), nullable=False),
        sa.Column('access_method', sa.String(32), nullable=False, server_default='nft_burn'),
        sa.Column('gate_pass_nonce', sa.String(64), nullable=True),
        sa.Column('accessed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['auction_id'], ['auctions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('transaction_hash'),
    )
    op.create_index('ix_meeting_access_events_auction_id', 'meeting_access_events', ['auction_id'])
    op.create_index('ix_meeting_access_events_wallet_address', 'meeting_access_events', ['wallet_address'])

    # Gate passes table
    op.create_table(
        'gate_passes',
        sa.Column('nonce', sa.String(64), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('wallet_address', sa.String(42), nullable=False),
        sa.Column('auction_id', sa.BigInteger(), nullable=False),
        sa.Column('nft_token_id', sa.BigInteger(), nullable=False),
        sa.Column('payload_hash', sa.String(66), nullable=False),
        sa.Column('signature', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('nonce'),
    )
    op.create_index('ix_gate_passes_wallet_address', 'gate_passes', ['wallet_address'])
    op.create_index('ix_gate_passes_expires_at', 'gate_passes', ['expires_at'])


def downgrade() -> None:
    op.drop_table('gate_passes')
    op.drop_table('meeting_access_events')
    op.drop_table('meetings')
    op.drop_table('auctions')
    op.drop_table('users')
