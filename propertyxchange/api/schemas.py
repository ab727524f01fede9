"""Request bodies accepted by the API."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


def _not_null(value: object) -> object:
    """Partial updates may omit a field but not clear a required column."""
    if value is None:
        raise ValueError("may not be null")
    return value


class ListingCreate(_Body):
    name: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(ge=0)
    discount_percent: Decimal | None = Field(default=None, ge=0, le=100)
    discount_price: Decimal | None = Field(default=None, ge=0)
    discount_end_date: datetime | None = None
    purpose: str = Field(min_length=1)
    property_type: str = Field(alias="type", min_length=1)
    sub_type: str | None = None
    number_of_beds: int = Field(default=0, ge=0)
    number_of_bathrooms: int = Field(default=0, ge=0)
    toilets: int = Field(default=0, ge=0)
    latitude: str | None = None
    longitude: str | None = None
    installment: bool = False
    append_to: str | None = None
    installment_append_to: str | None = None
    initial_payment: Decimal | None = Field(default=None, ge=0)
    monthly_payment: Decimal | None = Field(default=None, ge=0)
    duration: int | None = Field(default=None, ge=0)
    furnished: bool = False
    serviced: bool = False
    newly_built: bool = False
    parking: bool = False
    offer: bool = False
    youtube_link: str | None = None
    instagram_link: str | None = None
    features: list[str] = Field(default_factory=list)
    street: str | None = None
    lga: str | None = None
    state: str | None = None
    description: str | None = None
    images: list[str] = Field(default_factory=list)


class ListingUpdate(_Body):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    price: Decimal | None = Field(default=None, ge=0)
    discount_percent: Decimal | None = Field(default=None, ge=0, le=100)
    discount_price: Decimal | None = Field(default=None, ge=0)
    discount_end_date: datetime | None = None
    purpose: str | None = None
    property_type: str | None = Field(default=None, alias="type")
    sub_type: str | None = None
    number_of_beds: int | None = Field(default=None, ge=0)
    number_of_bathrooms: int | None = Field(default=None, ge=0)
    toilets: int | None = Field(default=None, ge=0)
    latitude: str | None = None
    longitude: str | None = None
    installment: bool | None = None
    append_to: str | None = None
    installment_append_to: str | None = None
    initial_payment: Decimal | None = Field(default=None, ge=0)
    monthly_payment: Decimal | None = Field(default=None, ge=0)
    duration: int | None = Field(default=None, ge=0)
    furnished: bool | None = None
    serviced: bool | None = None
    newly_built: bool | None = None
    parking: bool | None = None
    offer: bool | None = None
    youtube_link: str | None = None
    instagram_link: str | None = None
    features: list[str] | None = None
    street: str | None = None
    lga: str | None = None
    state: str | None = None
    description: str | None = None
    images: list[str] | None = None

    @field_validator(
        "name",
        "price",
        "purpose",
        "property_type",
        "number_of_beds",
        "number_of_bathrooms",
        "toilets",
        "installment",
        "furnished",
        "serviced",
        "newly_built",
        "parking",
        "offer",
        "features",
        "images",
    )
    @classmethod
    def _reject_null(cls, value: object) -> object:
        return _not_null(value)


class ListingRejection(_Body):
    reason: str | None = None


class FeaturedToggle(_Body):
    is_featured: bool


class SaveListing(_Body):
    listing_id: str = Field(min_length=1)


class UserUpdate(_Body):
    username: str | None = Field(default=None, min_length=1, max_length=100)
    first_name: str | None = None
    last_name: str | None = None
    company_name: str | None = None
    profile_photo: str | None = None
    company_photo: str | None = None
    account_type: str | None = None
    phone_number: str | None = None
    whats_app_num: str | None = None
    address: str | None = None
    state: str | None = None
    lga: str | None = None
    about_company: str | None = None
    services: list[str] | None = None
    company_reg_document: str | None = None
    profile_completed: bool | None = None

    @field_validator("username", "account_type", "services", "profile_completed")
    @classmethod
    def _reject_null(cls, value: object) -> object:
        return _not_null(value)


class UserRoleUpdate(_Body):
    role: Literal["USER", "STAFF", "ADMIN"]


class UserBan(_Body):
    reason: str | None = None


class PropertyRequestCreate(_Body):
    purpose: str = Field(min_length=1)
    property_type: str = Field(alias="type", min_length=1)
    sub_type: str | None = None
    state: str = Field(min_length=1)
    lga: str = Field(min_length=1)
    number_of_beds: int | None = Field(default=None, ge=0)
    budget: Decimal = Field(ge=0)
    comments: str | None = None
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=255)
    phone_number: str = Field(min_length=1, max_length=30)
    account_type: str = Field(min_length=1)
    expires_at: datetime | None = None


class PropertyRequestUpdate(_Body):
    purpose: str | None = None
    property_type: str | None = Field(default=None, alias="type")
    sub_type: str | None = None
    state: str | None = None
    lga: str | None = None
    number_of_beds: int | None = Field(default=None, ge=0)
    budget: Decimal | None = Field(default=None, ge=0)
    comments: str | None = None
    name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    account_type: str | None = None
    status: Literal["OPEN", "MATCHED", "CLOSED", "EXPIRED"] | None = None
    is_public: bool | None = None
    expires_at: datetime | None = None

    @field_validator(
        "purpose",
        "property_type",
        "state",
        "lga",
        "budget",
        "name",
        "email",
        "phone_number",
        "account_type",
        "status",
        "is_public",
    )
    @classmethod
    def _reject_null(cls, value: object) -> object:
        return _not_null(value)


class RequestResponseCreate(_Body):
    message: str = Field(min_length=1)
    contact_email: str | None = None
    contact_phone: str | None = None
    proposed_price: Decimal | None = Field(default=None, ge=0)
    listing_id: str | None = None
