"""API dependencies"""

from fastapi import Request

from vanguard.services.listing_service import ListingService
from vanguard.services.message_service import MessageThread


def get_listing_service(request: Request) -> ListingService:
    """Listing service created in the application lifespan."""
    return request.app.state.listing_service


def get_message_thread(request: Request) -> MessageThread:
    return request.app.state.message_thread
