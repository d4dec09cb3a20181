"""create chat_requests table

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "chat_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("created_by_name", sa.String(255), server_default="", nullable=False),
        sa.Column("accepted_by", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["accepted_by"], ["specialists.id"]),
        sa.PrimaryKeyConstraint("id"),
        # Row-level guards for the lifecycle invariants
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'closed')",
            name="ck_chat_requests_status",
        ),
        sa.CheckConstraint(
            "(accepted_by IS NULL) = (status = 'pending')",
            name="ck_chat_requests_accepted_by",
        ),
        sa.CheckConstraint(
            "(closed_at IS NULL) = (status <> 'closed')",
            name="ck_chat_requests_closed_at",
        ),
    )
    op.create_index("idx_chat_requests_created", "chat_requests", ["created_at"])
    op.create_index("idx_chat_requests_accepted_by", "chat_requests", ["accepted_by", "created_at"])
    op.create_index("idx_chat_requests_status", "chat_requests", ["status"])


def downgrade() -> None:
    op.drop_index("idx_chat_requests_status", table_name="chat_requests")
    op.drop_index("idx_chat_requests_accepted_by", table_name="chat_requests")
    op.drop_index("idx_chat_requests_created", table_name="chat_requests")
    op.drop_table("chat_requests")
