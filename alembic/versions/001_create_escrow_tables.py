"""create escrow, address index and contract item tables

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INDEX_TABLES = ("escrows_by_creator", "escrows_by_beneficiary", "escrows_by_approver")


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    # Counter and version marker
    op.create_table(
        "contract_items",
        sa.Column("key", sa.String(64), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        _updated_at(),
    )

    op.create_table(
        "escrows",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("creator", sa.String(128), nullable=False),
        sa.Column("beneficiary", sa.String(128), nullable=False),
        sa.Column("denom", sa.String(128), nullable=False),
        sa.Column("amount", sa.String(40), nullable=False),
        sa.Column("approver1", sa.String(128), nullable=False),
        sa.Column("approver2", sa.String(128), nullable=False),
        sa.Column("approver3", sa.String(128), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("approvals", sa.JSON(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("completed_at", sa.BigInteger(), nullable=True),
        _updated_at(),
    )

    for table in INDEX_TABLES:
        op.create_table(
            table,
            sa.Column("address", sa.String(128), primary_key=True),
            sa.Column(
                "escrow_id",
                sa.BigInteger(),
                sa.ForeignKey("escrows.id"),
                primary_key=True,
            ),
        )
        op.create_index(f"ix_{table}_escrow_id", table, ["escrow_id"])


def downgrade() -> None:
    for table in reversed(INDEX_TABLES):
        op.drop_index(f"ix_{table}_escrow_id", table_name=table)
        op.drop_table(table)
    op.drop_table("escrows")
    op.drop_table("contract_items")
