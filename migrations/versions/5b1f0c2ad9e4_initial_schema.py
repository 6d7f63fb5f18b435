"""initial schema

Revision ID: 5b1f0c2ad9e4
Revises:
Create Date: 2026-10-17 09:12:44.318020

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1f0c2ad9e4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, relationships, messages and conversation counters."""
    op.create_table(
        "user_account",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "relationship",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user1_id", sa.Integer(), nullable=False),
        sa.Column("user2_id", sa.Integer(), nullable=False),
        sa.Column("user_low_id", sa.Integer(), nullable=False),
        sa.Column("user_high_id", sa.Integer(), nullable=False),
        sa.Column(
            "state",
            sa.Enum(
                "pending",
                "matched",
                "unmatched",
                "nudge_sent",
                name="relationship_state",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("initiator_id", sa.Integer(), nullable=False),
        sa.Column("meeting_place_id", sa.Text(), nullable=True),
        sa.Column("place_chosen_by_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user1_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["user2_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["initiator_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["place_chosen_by_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_low_id", "user_high_id", name="uq_relationship_pair"),
    )
    op.create_index(
        "ix_relationship_user2_state", "relationship", ["user2_id", "state"], unique=False
    )
    op.create_table(
        "message",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("conversation_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("receiver_id", sa.Integer(), nullable=False),
        sa.Column("sequence_id", sa.Integer(), nullable=False),
        sa.Column(
            "message_type",
            sa.Enum("text", "image", "video", "audio", name="message_type", native_enum=False),
            nullable=False,
        ),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("delivered", sa.Boolean(), nullable=False),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["conversation_id"], ["relationship.id"]),
        sa.ForeignKeyConstraint(["sender_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["receiver_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "conversation_id", "sequence_id", name="uq_message_conversation_sequence"
        ),
    )
    op.create_index("ix_message_conversation_id", "message", ["conversation_id"], unique=False)
    op.create_index("ix_message_receiver_id", "message", ["receiver_id"], unique=False)
    op.create_table(
        "conversation_counter",
        sa.Column("conversation_id", sa.Integer(), nullable=False),
        sa.Column("last_sequence_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["conversation_id"], ["relationship.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("conversation_id"),
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_table("conversation_counter")
    op.drop_index("ix_message_receiver_id", table_name="message")
    op.drop_index("ix_message_conversation_id", table_name="message")
    op.drop_table("message")
    op.drop_index("ix_relationship_user2_state", table_name="relationship")
    op.drop_table("relationship")
    op.drop_table("user_account")
