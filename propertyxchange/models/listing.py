"""Property listing table model."""

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
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from propertyxchange.models.base import Base, new_id


class Listing(Base):
    """Property offered for sale, rent, short-let or joint venture."""

    __tablename__ = "listings"
    __table_args__ = (
        Index("idx_listings_status", "status"),
        Index("idx_listings_location", "state", "lga"),
        Index("idx_listings_category", "purpose", "type"),
        Index("idx_listings_user", "user_id"),
        Index("idx_listings_price", "price"),
        Index("idx_listings_features", "features", postgresql_using="gin"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    discount_percent: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    discount_price: Mapped[Decimal | None] = mapped_column(
        Numeric(16, 2), nullable=True
    )
    discount_end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    purpose: Mapped[str] = mapped_column(String(20), nullable=False)
    property_type: Mapped[str] = mapped_column("type", String(40), nullable=False)
    sub_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    number_of_beds: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    number_of_bathrooms: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    toilets: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    latitude: Mapped[str | None] = mapped_column(String(32), nullable=True)
    longitude: Mapped[str | None] = mapped_column(String(32), nullable=True)
    installment: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    append_to: Mapped[str | None] = mapped_column(String(50), nullable=True)
    installment_append_to: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    initial_payment: Mapped[Decimal | None] = mapped_column(
        Numeric(16, 2), nullable=True
    )
    monthly_payment: Mapped[Decimal | None] = mapped_column(
        Numeric(16, 2), nullable=True
    )
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    furnished: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    serviced: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    newly_built: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    parking: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    offer: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    youtube_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    instagram_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    features: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=list, server_default="{}"
    )
    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    lga: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    images: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list, server_default="{}"
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default="PENDING", server_default="PENDING"
    )
    is_featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
