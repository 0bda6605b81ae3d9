"""create wallet, custodial key and ledger tables

Revision ID: 7c1e5a90d2b4
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "7c1e5a90d2b4"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "wallets",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("name", sa.String(length=100)),
        sa.Column("chain_type", sa.String(length=20), nullable=False, server_default="iota-evm"),
        sa.Column("chain_id", sa.Integer(), nullable=False),
        sa.Column("is_custodial", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_connected", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("connected_at", sa.DateTime(timezone=True)),
        sa.Column("disconnected_at", sa.DateTime(timezone=True)),
        sa.Column("last_used_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"])
    op.create_index("ix_wallets_address", "wallets", ["address"])
    op.create_index("ix_wallets_user_address", "wallets", ["user_id", "address"], unique=True)

    op.create_table(
        "custodial_keys",
        sa.Column("wallet_address", sa.String(length=42), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("ciphertext", sa.Text(), nullable=False),
        sa.Column("algorithm", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_custodial_keys_user_id", "custodial_keys", ["user_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("to_token", sa.String(length=64)),
        sa.Column("amount", sa.String(length=78), nullable=False),
        sa.Column("value_usd", sa.String(length=78)),
        sa.Column("from_wallet", sa.String(length=42)),
        sa.Column("to_wallet", sa.String(length=42)),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("tx_hash", sa.String(length=100)),
        sa.Column("error_detail", sa.Text()),
        sa.Column("notes", sa.Text()),
        sa.Column("meta", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_transactions_owner_id", "transactions", ["owner_id"])
    op.create_index("ix_transactions_kind", "transactions", ["kind"])
    op.create_index("ix_transactions_status", "transactions", ["status"])
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_transactions_created_at", table_name="transactions")
    op.drop_index("ix_transactions_status", table_name="transactions")
    op.drop_index("ix_transactions_kind", table_name="transactions")
    op.drop_index("ix_transactions_owner_id", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("ix_custodial_keys_user_id", table_name="custodial_keys")
    op.drop_table("custodial_keys")

    op.drop_index("ix_wallets_user_address", table_name="wallets")
    op.drop_index("ix_wallets_address", table_name="wallets")
    op.drop_index("ix_wallets_user_id", table_name="wallets")
    op.drop_table("wallets")
