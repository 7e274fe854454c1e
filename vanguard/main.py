from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from vanguard.api.routes import health, listings, messages
from vanguard.core.config import settings
from vanguard.core.logging import get_logger
from vanguard.core.session import SessionStore, build_session_store
from vanguard.services.backend_client import BackendClient
from vanguard.services.listing_service import ListingService
from vanguard.services.message_service import MessagePoller, MessageThread

log = get_logger("app")


def create_app(
    backend: Optional[BackendClient] = None,
    session_store: Optional[SessionStore] = None,
    load_on_startup: Optional[bool] = None,
    poll_messages: Optional[bool] = None,
) -> FastAPI:
    """Build the FastAPI app; collaborators can be injected for tests."""
    should_load = settings.LOAD_ON_STARTUP if load_on_startup is None else load_on_startup
    should_poll = settings.MESSAGE_POLLING_ENABLED if poll_messages is None else poll_messages

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(f"Starting application in {settings.ENV.upper()} mode")
        log.info(f"External API: {settings.BACKEND_URL}")

        client = backend or BackendClient()
        store = session_store or build_session_store()
        service = ListingService(client, store)

        auth = store.load_auth()
        user_id = None
        if auth is not None:
            try:
                user_id = int(auth.user.id)
            except (TypeError, ValueError):
                log.warning(f"Session user id {auth.user.id!r} is not numeric; messaging as anonymous")
        thread = MessageThread(client, user_id=user_id)
        poller = MessagePoller(thread)

        app.state.listing_service = service
        app.state.message_thread = thread
        app.state.message_poller = poller

        # A failed first load leaves an empty view with service.error set
        if should_load:
            await service.refresh()

        if should_poll:
            poller.start()
        else:
            log.info("Message polling is disabled (MESSAGE_POLLING_ENABLED=false)")

        yield

        log.info("Shutting down services...")
        await poller.stop()
        service.close()
        await client.aclose()
        log.info("Application shutdown complete")

    app = FastAPI(
        title="Vanguard Listings",
        description="Unified asset and coin listing view over the Vanguard Investment API",
        version="1.0.0",
        lifespan=lifespan,
        # Disable docs in production
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
        debug=settings.debug_enabled,
    )

    app.include_router(listings.router)
    app.include_router(messages.router)
    app.include_router(health.router)
    return app


app = create_app()
