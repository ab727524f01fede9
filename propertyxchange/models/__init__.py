"""SQLAlchemy ORM models."""

from propertyxchange.models.conversation import Conversation, Message
from propertyxchange.models.listing import Listing
from propertyxchange.models.notification import Notification
from propertyxchange.models.property_request import PropertyRequest, RequestResponse
from propertyxchange.models.saved_listing import SavedListing
from propertyxchange.models.user import User

__all__ = [
    "Conversation",
    "Listing",
    "Message",
    "Notification",
    "PropertyRequest",
    "RequestResponse",
    "SavedListing",
    "User",
]
