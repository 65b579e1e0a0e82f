"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _roommate_fk(name: str, nullable: bool = False, cascade: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.Text(),
        sa.ForeignKey("roommates.id", ondelete="CASCADE" if cascade else None),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "roommates",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("tg_id", sa.BigInteger(), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("username", sa.Text()),
        sa.Column("avatar", sa.Text(), nullable=False, server_default="👤"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "bills",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("total_amount", sa.Numeric(), nullable=False),
        _roommate_fk("paid_by"),
        _roommate_fk("full_owed_by", nullable=True),
        sa.Column("due_date", sa.Date()),
        sa.Column("is_settled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("total_amount > 0", name="bills_total_amount_positive"),
    )

    op.create_table(
        "bill_members",
        sa.Column("bill_id", sa.Text(), sa.ForeignKey("bills.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("roommate_id", sa.Text(), sa.ForeignKey("roommates.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("target", sa.Text(), nullable=False),
        sa.Column("target_id", sa.Text(), nullable=False),
        _roommate_fk("author_id", cascade=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("target in ('bill','chore','kitchen','noise')", name="comments_target_check"),
    )
    op.create_index("idx_comments_target", "comments", ["target", "target_id"])

    op.create_table(
        "chores",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("is_done", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "chore_assignees",
        sa.Column("chore_id", sa.Text(), sa.ForeignKey("chores.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("roommate_id", sa.Text(), sa.ForeignKey("roommates.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "kitchen_items",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Text()),
        _roommate_fk("created_by", nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "kitchen_assignees",
        sa.Column("item_id", sa.Text(), sa.ForeignKey("kitchen_items.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("roommate_id", sa.Text(), sa.ForeignKey("roommates.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "noise_notes",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("noted_on", sa.Date(), nullable=False),
        _roommate_fk("created_by", nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.CheckConstraint(
            "kind in ('chore','kitchen','bill','noise','roommate')",
            name="notifications_kind_check",
        ),
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("noise_notes")
    op.drop_table("kitchen_assignees")
    op.drop_table("kitchen_items")
    op.drop_table("chore_assignees")
    op.drop_table("chores")
    op.drop_index("idx_comments_target", table_name="comments")
    op.drop_table("comments")
    op.drop_table("bill_members")
    op.drop_table("bills")
    op.drop_table("roommates")
