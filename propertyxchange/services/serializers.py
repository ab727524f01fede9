"""Conversion of ORM records into JSON-ready dictionaries."""

import re
from datetime import datetime
from decimal import Decimal

from propertyxchange.models import (
    Conversation,
    Listing,
    Message,
    Notification,
    PropertyRequest,
    RequestResponse,
    User,
)

_UUID = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_HEX_ID = re.compile(r"^[0-9a-f]{24}$", re.IGNORECASE)


def is_record_id(value: str) -> bool:
    """True when ``value`` looks like a record id rather than a slug."""

    return bool(_UUID.match(value) or _HEX_ID.match(value))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def serialize_user(user: User) -> dict[str, object]:
    """Public profile fields; the password hash never leaves the service."""

    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "slug": user.slug,
        "profile_photo": user.profile_photo,
        "company_photo": user.company_photo,
        "company_name": user.company_name,
        "account_type": user.account_type,
        "role": user.role,
        "status": user.status,
        "verified": user.verified,
        "profile_completed": user.profile_completed,
        "phone_number": user.phone_number,
        "whats_app_num": user.whats_app_num,
        "address": user.address,
        "state": user.state,
        "lga": user.lga,
        "about_company": user.about_company,
        "services": list(user.services or []),
        "company_reg_document": user.company_reg_document,
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }


def serialize_user_summary(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "slug": user.slug,
        "profile_photo": user.profile_photo,
        "company_name": user.company_name,
        "company_photo": user.company_photo,
        "account_type": user.account_type,
        "verified": user.verified,
    }


def serialize_owner(user: User) -> dict[str, object]:
    return {
        **serialize_user_summary(user),
        "phone_number": user.phone_number,
        "whats_app_num": user.whats_app_num,
        "email": user.email,
    }


def serialize_agent(user: User, listing_count: int) -> dict[str, object]:
    return {
        **serialize_user_summary(user),
        "state": user.state,
        "lga": user.lga,
        "address": user.address,
        "about_company": user.about_company,
        "services": list(user.services or []),
        "created_at": _iso(user.created_at),
        "listing_count": listing_count,
    }


def serialize_listing(
    listing: Listing, owner: User | None = None
) -> dict[str, object]:
    data: dict[str, object] = {
        "id": listing.id,
        "slug": listing.slug,
        "name": listing.name,
        "price": _number(listing.price),
        "discount_percent": _number(listing.discount_percent),
        "discount_price": _number(listing.discount_price),
        "discount_end_date": _iso(listing.discount_end_date),
        "purpose": listing.purpose,
        "type": listing.property_type,
        "sub_type": listing.sub_type,
        "number_of_beds": listing.number_of_beds,
        "number_of_bathrooms": listing.number_of_bathrooms,
        "toilets": listing.toilets,
        "latitude": listing.latitude,
        "longitude": listing.longitude,
        "installment": listing.installment,
        "append_to": listing.append_to,
        "installment_append_to": listing.installment_append_to,
        "initial_payment": _number(listing.initial_payment),
        "monthly_payment": _number(listing.monthly_payment),
        "duration": listing.duration,
        "furnished": listing.furnished,
        "serviced": listing.serviced,
        "newly_built": listing.newly_built,
        "parking": listing.parking,
        "offer": listing.offer,
        "youtube_link": listing.youtube_link,
        "instagram_link": listing.instagram_link,
        "features": list(listing.features or []),
        "street": listing.street,
        "lga": listing.lga,
        "state": listing.state,
        "description": listing.description,
        "images": list(listing.images or []),
        "user_id": listing.user_id,
        "status": listing.status,
        "is_featured": listing.is_featured,
        "approved_by": listing.approved_by,
        "approved_at": _iso(listing.approved_at),
        "rejected_at": _iso(listing.rejected_at),
        "rejection_reason": listing.rejection_reason,
        "created_at": _iso(listing.created_at),
        "updated_at": _iso(listing.updated_at),
    }
    if owner is not None:
        data["user"] = serialize_user_summary(owner)
    return data


def serialize_property_request(
    request: PropertyRequest, response_count: int | None = None
) -> dict[str, object]:
    data: dict[str, object] = {
        "id": request.id,
        "slug": request.slug,
        "purpose": request.purpose,
        "type": request.property_type,
        "sub_type": request.sub_type,
        "state": request.state,
        "lga": request.lga,
        "number_of_beds": request.number_of_beds,
        "budget": _number(request.budget),
        "comments": request.comments,
        "name": request.name,
        "email": request.email,
        "phone_number": request.phone_number,
        "account_type": request.account_type,
        "user_id": request.user_id,
        "status": request.status,
        "is_public": request.is_public,
        "view_count": request.view_count,
        "expires_at": _iso(request.expires_at),
        "created_at": _iso(request.created_at),
        "updated_at": _iso(request.updated_at),
    }
    if response_count is not None:
        data["response_count"] = response_count
    return data


def serialize_request_response(
    response: RequestResponse,
    agent: User | None = None,
    listing: Listing | None = None,
) -> dict[str, object]:
    data: dict[str, object] = {
        "id": response.id,
        "request_id": response.request_id,
        "agent_id": response.agent_id,
        "message": response.message,
        "contact_email": response.contact_email,
        "contact_phone": response.contact_phone,
        "proposed_price": _number(response.proposed_price),
        "listing_id": response.listing_id,
        "created_at": _iso(response.created_at),
    }
    if agent is not None:
        data["agent"] = serialize_user_summary(agent)
    if listing is not None:
        data["listing"] = {
            "id": listing.id,
            "slug": listing.slug,
            "name": listing.name,
            "price": _number(listing.price),
            "images": list(listing.images or [])[:1],
        }
    return data


def serialize_notification(notification: Notification) -> dict[str, object]:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "entity_type": notification.entity_type,
        "entity_id": notification.entity_id,
        "is_read": notification.is_read,
        "created_at": _iso(notification.created_at),
    }


def serialize_message(message: Message) -> dict[str, object]:
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "message_type": message.message_type,
        "is_read": message.is_read,
        "read_at": _iso(message.read_at),
        "created_at": _iso(message.created_at),
    }


def serialize_conversation(conversation: Conversation) -> dict[str, object]:
    return {
        "id": conversation.id,
        "participants": list(conversation.participants or []),
        "last_message": conversation.last_message,
        "last_message_at": _iso(conversation.last_message_at),
        "created_at": _iso(conversation.created_at),
        "updated_at": _iso(conversation.updated_at),
    }
