"""allow one connected holder per wallet address

Revision ID: 3f9b2d61a8e7
Revises: 7c1e5a90d2b4
Create Date: 2026-10-19 15:30:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9b2d61a8e7"
down_revision = "7c1e5a90d2b4"
branch_labels = None
depends_on = None


def upgrade() -> None:
    connected = sa.column("is_connected", sa.Boolean()).is_(sa.true())
    op.create_index(
        "ux_wallets_connected_address",
        "wallets",
        ["address"],
        unique=True,
        sqlite_where=connected,
        postgresql_where=connected,
    )


def downgrade() -> None:
    op.drop_index("ux_wallets_connected_address", table_name="wallets")
