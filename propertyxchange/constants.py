"""Enumerated values stored on records and label normalization helpers."""

import re

ROLE_USER = "USER"
ROLE_STAFF = "STAFF"
ROLE_ADMIN = "ADMIN"
STAFF_ROLES = frozenset({ROLE_STAFF, ROLE_ADMIN})
USER_ROLES = (ROLE_USER, ROLE_STAFF, ROLE_ADMIN)

USER_STATUS_ACTIVE = "ACTIVE"
USER_STATUS_INACTIVE = "INACTIVE"
USER_STATUS_BANNED = "BANNED"

ACCOUNT_TYPE_INDIVIDUAL = "INDIVIDUAL"

LISTING_PENDING = "PENDING"
LISTING_APPROVED = "APPROVED"
LISTING_REJECTED = "REJECTED"

REQUEST_OPEN = "OPEN"
REQUEST_MATCHED = "MATCHED"
REQUEST_CLOSED = "CLOSED"
REQUEST_EXPIRED = "EXPIRED"
REQUEST_FINAL_STATUSES = frozenset({REQUEST_CLOSED, REQUEST_EXPIRED})

MESSAGE_TYPES = frozenset({"TEXT", "IMAGE", "FILE"})

NOTIFY_GENERAL = "GENERAL"
NOTIFY_NEW_LISTING = "NEW_LISTING"
NOTIFY_LISTING_APPROVED = "LISTING_APPROVED"
NOTIFY_LISTING_REJECTED = "LISTING_REJECTED"
NOTIFY_NEW_MESSAGE = "NEW_MESSAGE"

# Roles and account types that receive new property request alerts
REQUEST_ALERT_ROLES = (ROLE_USER, ROLE_STAFF, ROLE_ADMIN)
REQUEST_ALERT_ACCOUNT_TYPES = ("INDIVIDUAL", "ORGANIZATION", "DEVELOPER")

PURPOSE_LABELS = {
    "rent": "RENT",
    "sale": "SALE",
    "short-let": "SHORT_LET",
    "joint-venture": "JOINT_VENTURE",
}

PROPERTY_TYPE_LABELS = {
    "co-working space": "CO_WORKING_SPACE",
    "commercial property": "COMMERCIAL_PROPERTY",
    "flat/apartment": "FLAT_APARTMENT",
    "house": "HOUSE",
    "land": "LAND",
}

SUB_TYPE_LABELS = {
    # co-working space
    "conference room": "CONFERENCE_ROOM",
    "desk": "DESK",
    "meeting room": "MEETING_ROOM",
    "private office": "PRIVATE_OFFICE",
    "workstation": "WORKSTATION",
    # commercial property
    "church": "CHURCH",
    "event center": "EVENT_CENTER",
    "factory": "FACTORY",
    "filling station": "FILLING_STATION",
    "hotel guest house": "HOTEL_GUEST_HOUSE",
    "office space": "OFFICE_SPACE",
    "school": "SCHOOL",
    "shop": "SHOP",
    "shop in mall": "SHOP_IN_MALL",
    "show room": "SHOW_ROOM",
    "tank farm": "TANK_FARM",
    "warehouse": "WAREHOUSE",
    # flat/apartment
    "boys quarter": "BOYS_QUARTER",
    "mini flat": "MINI_FLAT",
    "mini-flat": "MINI_FLAT",
    "penthouse": "PENTHOUSE",
    "self contain": "SELF_CONTAIN",
    "shared apartment": "SHARED_APARTMENT",
    "studio apartment": "STUDIO_APARTMENT",
    # house
    "block of flats": "BLOCK_OF_FLATS",
    "detached bungalow": "DETACHED_BUNGALOW",
    "detached duplex": "DETACHED_DUPLEX",
    "massionette": "MASSIONETTE",
    "semi detached bungalow": "SEMI_DETACHED_BUNGALOW",
    "semi detached duplex": "SEMI_DETACHED_DUPLEX",
    "terraced bungalow": "TERRACED_BUNGALOW",
    "terraced duplex": "TERRACED_DUPLEX",
    # land
    "commercial land": "COMMERCIAL_LAND",
    "industrial land": "INDUSTRIAL_LAND",
    "joint venture land": "JOINT_VENTURE_LAND",
    "mixed use land": "MIXED_USE_LAND",
    "residential land": "RESIDENTIAL_LAND",
    "serviced residential land": "SERVICED_RESIDENTIAL_LAND",
}

ACCOUNT_TYPE_LABELS = {
    "individual": "INDIVIDUAL",
    "law": "LAW",
    "survey": "SURVEY",
    "organization": "ORGANIZATION",
    "developer": "DEVELOPER",
    "investor": "INVESTOR",
    "other": "OTHER",
}

_NON_LETTER = re.compile(r"[^A-Z]")


def normalize_purpose(value: str) -> str:
    return PURPOSE_LABELS.get(value.strip().lower(), value.strip().upper())


def normalize_property_type(value: str) -> str:
    label = value.strip()
    return PROPERTY_TYPE_LABELS.get(
        label.lower(), _NON_LETTER.sub("_", label.upper())
    )


def normalize_sub_type(value: str | None) -> str | None:
    if not value:
        return None
    label = value.strip()
    return SUB_TYPE_LABELS.get(label.lower(), _NON_LETTER.sub("_", label.upper()))


def normalize_account_type(value: str) -> str:
    return ACCOUNT_TYPE_LABELS.get(value.strip().lower(), value.strip().upper())
