# Services package
from vanguard.services.backend_client import BackendClient
from vanguard.services.listing_service import ListingService
from vanguard.services.listing_view import ListingPage, ListingView
from vanguard.services.message_service import MessagePoller, MessageThread

__all__ = [
    "BackendClient",
    "ListingService",
    "ListingPage",
    "ListingView",
    "MessagePoller",
    "MessageThread",
]
