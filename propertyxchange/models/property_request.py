"""Buyer property request and agent response table models."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from propertyxchange.models.base import Base, new_id


class PropertyRequest(Base):
    """Buyer or tenant request describing the property they are looking for."""

    __tablename__ = "property_requests"
    __table_args__ = (
        Index("idx_property_requests_status", "status", "is_public"),
        Index("idx_property_requests_location", "state", "lga"),
        Index("idx_property_requests_expires", "expires_at"),
        Index("idx_property_requests_user", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    purpose: Mapped[str] = mapped_column(String(20), nullable=False)
    property_type: Mapped[str] = mapped_column("type", String(40), nullable=False)
    sub_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    lga: Mapped[str] = mapped_column(String(100), nullable=False)
    number_of_beds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    budget: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(30), nullable=False)
    account_type: Mapped[str] = mapped_column(String(30), nullable=False)
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default="OPEN", server_default="OPEN"
    )
    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    view_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class RequestResponse(Base):
    """Agent answer to a property request."""

    __tablename__ = "request_responses"
    __table_args__ = (
        UniqueConstraint(
            "request_id", "agent_id", name="uq_request_responses_request_agent"
        ),
        Index("idx_request_responses_listing", "listing_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("property_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    agent_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    proposed_price: Mapped[Decimal | None] = mapped_column(
        Numeric(16, 2), nullable=True
    )
    listing_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("listings.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
