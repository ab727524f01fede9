"""Initial marketplace tables: users, listings, requests, chat and notifications.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _flag(name: str, default: str = "false") -> sa.Column:
    return sa.Column(name, sa.Boolean(), server_default=sa.text(default), nullable=False)


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("password", sa.Text(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("slug", sa.String(length=200), nullable=True),
        sa.Column("profile_photo", sa.Text(), nullable=True),
        sa.Column("company_photo", sa.Text(), nullable=True),
        sa.Column("company_name", sa.String(length=200), nullable=True),
        sa.Column(
            "account_type",
            sa.String(length=30),
            server_default="INDIVIDUAL",
            nullable=False,
        ),
        sa.Column("role", sa.String(length=10), server_default="USER", nullable=False),
        sa.Column(
            "status", sa.String(length=10), server_default="ACTIVE", nullable=False
        ),
        _flag("verified"),
        _flag("profile_completed"),
        sa.Column("phone_number", sa.String(length=30), nullable=True),
        sa.Column("whats_app_num", sa.String(length=30), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("lga", sa.String(length=100), nullable=True),
        sa.Column("about_company", sa.Text(), nullable=True),
        sa.Column(
            "services",
            postgresql.ARRAY(sa.String()),
            server_default="{}",
            nullable=False,
        ),
        sa.Column("company_reg_document", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("idx_users_role", "users", ["role"], unique=False)
    op.create_index("idx_users_location", "users", ["state", "lga"], unique=False)
    op.create_index("idx_users_account_type", "users", ["account_type"], unique=False)

    op.create_table(
        "listings",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("price", sa.Numeric(precision=16, scale=2), nullable=False),
        sa.Column("discount_percent", sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column("discount_price", sa.Numeric(precision=16, scale=2), nullable=True),
        sa.Column("discount_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("purpose", sa.String(length=20), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("sub_type", sa.String(length=40), nullable=True),
        sa.Column("number_of_beds", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "number_of_bathrooms", sa.Integer(), server_default="0", nullable=False
        ),
        sa.Column("toilets", sa.Integer(), server_default="0", nullable=False),
        sa.Column("latitude", sa.String(length=32), nullable=True),
        sa.Column("longitude", sa.String(length=32), nullable=True),
        _flag("installment"),
        sa.Column("append_to", sa.String(length=50), nullable=True),
        sa.Column("installment_append_to", sa.String(length=50), nullable=True),
        sa.Column("initial_payment", sa.Numeric(precision=16, scale=2), nullable=True),
        sa.Column("monthly_payment", sa.Numeric(precision=16, scale=2), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        _flag("furnished"),
        _flag("serviced"),
        _flag("newly_built"),
        _flag("parking"),
        _flag("offer"),
        sa.Column("youtube_link", sa.Text(), nullable=True),
        sa.Column("instagram_link", sa.Text(), nullable=True),
        sa.Column(
            "features",
            postgresql.ARRAY(sa.String()),
            server_default="{}",
            nullable=False,
        ),
        sa.Column("street", sa.String(length=255), nullable=True),
        sa.Column("lga", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "images", postgresql.ARRAY(sa.Text()), server_default="{}", nullable=False
        ),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column(
            "status", sa.String(length=10), server_default="PENDING", nullable=False
        ),
        _flag("is_featured"),
        sa.Column("approved_by", sa.String(length=36), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("idx_listings_status", "listings", ["status"], unique=False)
    op.create_index("idx_listings_location", "listings", ["state", "lga"], unique=False)
    op.create_index(
        "idx_listings_category", "listings", ["purpose", "type"], unique=False
    )
    op.create_index("idx_listings_user", "listings", ["user_id"], unique=False)
    op.create_index("idx_listings_price", "listings", ["price"], unique=False)
    op.create_index(
        "idx_listings_features",
        "listings",
        ["features"],
        unique=False,
        postgresql_using="gin",
    )

    op.create_table(
        "saved_listings",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("listing_id", sa.String(length=36), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "listing_id", name="uq_saved_listings_user_listing"
        ),
    )
    op.create_index(
        "idx_saved_listings_user", "saved_listings", ["user_id"], unique=False
    )
    op.create_index(
        "idx_saved_listings_listing", "saved_listings", ["listing_id"], unique=False
    )

    op.create_table(
        "property_requests",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("purpose", sa.String(length=20), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("sub_type", sa.String(length=40), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=False),
        sa.Column("lga", sa.String(length=100), nullable=False),
        sa.Column("number_of_beds", sa.Integer(), nullable=True),
        sa.Column("budget", sa.Numeric(precision=16, scale=2), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=30), nullable=False),
        sa.Column("account_type", sa.String(length=30), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("status", sa.String(length=10), server_default="OPEN", nullable=False),
        _flag("is_public", "true"),
        sa.Column("view_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index(
        "idx_property_requests_status",
        "property_requests",
        ["status", "is_public"],
        unique=False,
    )
    op.create_index(
        "idx_property_requests_location",
        "property_requests",
        ["state", "lga"],
        unique=False,
    )
    op.create_index(
        "idx_property_requests_expires",
        "property_requests",
        ["expires_at"],
        unique=False,
    )
    op.create_index(
        "idx_property_requests_user", "property_requests", ["user_id"], unique=False
    )

    op.create_table(
        "request_responses",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("request_id", sa.String(length=36), nullable=False),
        sa.Column("agent_id", sa.String(length=36), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=30), nullable=True),
        sa.Column("proposed_price", sa.Numeric(precision=16, scale=2), nullable=True),
        sa.Column("listing_id", sa.String(length=36), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["request_id"], ["property_requests.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["agent_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "request_id", "agent_id", name="uq_request_responses_request_agent"
        ),
    )
    op.create_index(
        "idx_request_responses_listing",
        "request_responses",
        ["listing_id"],
        unique=False,
    )

    op.create_table(
        "conversations",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column(
            "participants", postgresql.ARRAY(sa.String(length=36)), nullable=False
        ),
        sa.Column("last_message", sa.Text(), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_conversations_participants",
        "conversations",
        ["participants"],
        unique=False,
        postgresql_using="gin",
    )
    op.create_index(
        "idx_conversations_last_message_at",
        "conversations",
        ["last_message_at"],
        unique=False,
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("conversation_id", sa.String(length=36), nullable=False),
        sa.Column("sender_id", sa.String(length=36), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "message_type", sa.String(length=10), server_default="TEXT", nullable=False
        ),
        _flag("is_read"),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["conversations.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_messages_conversation_created",
        "messages",
        ["conversation_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "idx_messages_unread", "messages", ["conversation_id", "is_read"], unique=False
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=30), server_default="GENERAL", nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=True),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        _flag("is_read"),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_notifications_user_read",
        "notifications",
        ["user_id", "is_read"],
        unique=False,
    )
    op.create_index(
        "idx_notifications_created", "notifications", ["created_at"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("idx_notifications_created", table_name="notifications")
    op.drop_index("idx_notifications_user_read", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("idx_messages_unread", table_name="messages")
    op.drop_index("idx_messages_conversation_created", table_name="messages")
    op.drop_table("messages")

    op.drop_index("idx_conversations_last_message_at", table_name="conversations")
    op.drop_index("idx_conversations_participants", table_name="conversations")
    op.drop_table("conversations")

    op.drop_index("idx_request_responses_listing", table_name="request_responses")
    op.drop_table("request_responses")

    op.drop_index("idx_property_requests_user", table_name="property_requests")
    op.drop_index("idx_property_requests_expires", table_name="property_requests")
    op.drop_index("idx_property_requests_location", table_name="property_requests")
    op.drop_index("idx_property_requests_status", table_name="property_requests")
    op.drop_table("property_requests")

    op.drop_index("idx_saved_listings_listing", table_name="saved_listings")
    op.drop_index("idx_saved_listings_user", table_name="saved_listings")
    op.drop_table("saved_listings")

    op.drop_index("idx_listings_features", table_name="listings")
    op.drop_index("idx_listings_price", table_name="listings")
    op.drop_index("idx_listings_user", table_name="listings")
    op.drop_index("idx_listings_category", table_name="listings")
    op.drop_index("idx_listings_location", table_name="listings")
    op.drop_index("idx_listings_status", table_name="listings")
    op.drop_table("listings")

    op.drop_index("idx_users_account_type", table_name="users")
    op.drop_index("idx_users_location", table_name="users")
    op.drop_index("idx_users_role", table_name="users")
    op.drop_table("users")
