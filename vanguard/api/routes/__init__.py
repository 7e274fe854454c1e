from vanguard.api.routes.health import router as health_router
from vanguard.api.routes.listings import router as listings_router
from vanguard.api.routes.messages import router as messages_router

__all__ = ["health_router", "listings_router", "messages_router"]
