"""Baseline: users, knocks, chats, messages, notifications

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_baseline"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the knock and chat tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("profile_image", sa.String(), nullable=True),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "knocks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("knocker_id", sa.Integer(), nullable=False),
        sa.Column("knocked_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=9), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["knocker_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["knocked_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("knocker_id <> knocked_id", name="ck_knocks_not_self"),
        sa.CheckConstraint("status IN ('pending', 'onesided', 'locked_in')", name="knock_status"),
    )
    op.create_index("ix_knocks_knocker_knocked", "knocks", ["knocker_id", "knocked_id"], unique=True)
    op.create_index("ix_knocks_knocked_id", "knocks", ["knocked_id"], unique=False)

    op.create_table(
        "chats",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("initiator_id", sa.Integer(), nullable=False),
        sa.Column("recipient_id", sa.Integer(), nullable=False),
        sa.Column("pair_key", sa.String(), nullable=False, unique=True),
        sa.Column("gate_state", sa.String(length=25), nullable=False, server_default="open"),
        sa.Column("opened_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["initiator_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["opened_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_chats_initiator_id", "chats", ["initiator_id"], unique=False)
    op.create_index("ix_chats_recipient_id", "chats", ["recipient_id"], unique=False)

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("chat_id", sa.String(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["chat_id"], ["chats.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_messages_chat_id", "messages", ["chat_id"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("recipient_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=True),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("knock_id", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_notifications_recipient_created", "notifications", ["recipient_id", "created_at"], unique=False)
    op.create_index("ix_notifications_knock_id", "notifications", ["knock_id"], unique=False)


def downgrade() -> None:
    """Drop the knock and chat tables."""
    op.drop_index("ix_notifications_knock_id", table_name="notifications")
    op.drop_index("ix_notifications_recipient_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_messages_chat_id", table_name="messages")
    op.drop_table("messages")
    op.drop_index("ix_chats_recipient_id", table_name="chats")
    op.drop_index("ix_chats_initiator_id", table_name="chats")
    op.drop_table("chats")
    op.drop_index("ix_knocks_knocked_id", table_name="knocks")
    op.drop_index("ix_knocks_knocker_knocked", table_name="knocks")
    op.drop_table("knocks")
    op.drop_table("users")
