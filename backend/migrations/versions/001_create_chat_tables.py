"""Create users, contact_requests, contacts and messages tables

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Initial ChatSphere schema.
How:   PostgreSQL types: UUID keys with gen_random_uuid() defaults,
       TIMESTAMP WITH TIME ZONE, CHECK constraint on request status.
       Every foreign key to users cascades on delete.

Rollback: downgrade() drops all four tables (all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _user_fk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("name", sa.String(100), nullable=False,
                  comment="Display name, trimmed, at least 2 characters"),
        sa.Column("email", sa.String(255), nullable=False,
                  comment="Login identifier, stored lowercase"),
        sa.Column("password_hash", sa.String(255), nullable=False,
                  comment="passlib hash of the account password"),
        sa.Column("avatar", sa.String(512), nullable=True,
                  comment="Public avatar URL on the image host"),
        sa.Column("is_online", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_seen", sa.TIMESTAMP(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "contact_requests",
        _uuid_pk(),
        _user_fk("from_user_id"),
        _user_fk("to_user_id"),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')",
            name="ck_contact_requests_status",
        ),
    )
    op.create_index("idx_contact_requests_to_status", "contact_requests", ["to_user_id", "status"])
    op.create_index("idx_contact_requests_from_status", "contact_requests", ["from_user_id", "status"])

    op.create_table(
        "contacts",
        _uuid_pk(),
        _user_fk("user_id"),
        _user_fk("contact_id"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "contact_id", name="uq_contacts_user_contact"),
    )
    op.create_index("ix_contacts_user_id", "contacts", ["user_id"])

    op.create_table(
        "messages",
        _uuid_pk(),
        _user_fk("sender_id"),
        _user_fk("receiver_id"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("read_at", sa.TIMESTAMP(timezone=True), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_messages_pair_created", "messages", ["sender_id", "receiver_id", "created_at"]
    )
    op.create_index("idx_messages_receiver_unread", "messages", ["receiver_id", "is_read"])


def downgrade() -> None:
    op.drop_index("idx_messages_receiver_unread", table_name="messages")
    op.drop_index("idx_messages_pair_created", table_name="messages")
    op.drop_table("messages")
    op.drop_index("ix_contacts_user_id", table_name="contacts")
    op.drop_table("contacts")
    op.drop_index("idx_contact_requests_from_status", table_name="contact_requests")
    op.drop_index("idx_contact_requests_to_status", table_name="contact_requests")
    op.drop_table("contact_requests")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
