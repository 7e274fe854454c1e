"""Listing Service - loads listings, applies optimistic mutations and rolls back on failure."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from vanguard.core.cancellation import FetchSequencer
from vanguard.core.errors import FetchFailure, ListingNotFoundError, MutationFailure
from vanguard.core.logging import get_logger
from vanguard.core.session import SessionStore
from vanguard.ingestion.runner import ListingLoader
from vanguard.schemas.api import AssetCreate, CoinCreate
from vanguard.schemas.unified import UnifiedItem
from vanguard.services.backend_client import BackendClient
from vanguard.services.listing_view import ListingView
from vanguard.services.unifier import (
    MutationResult,
    apply_optimistic_mutation,
    normalize,
    revert_mutation,
    to_update_payload,
)

log = get_logger("listing_service")

Notifier = Callable[[str], None]
Patch = Union[Mapping[str, Any], UnifiedItem, None]


def _log_alert(text: str) -> None:
    log.bind(alert=True).warning(f"ALERT: {text}")


class ListingService:
    """Caller side of the unification pipeline for one view session.

    Responsibilities:
    - Load listings under a cancellation token; stale loads are discarded
    - Keep the last-known-good items when a load fails, exposing ``error``
    - Apply mutations optimistically; on failure restore the snapshot, or only
      the mutated item when the view changed while the call was in flight
    - Decide per-item manage permissions from the injected session store
    """

    def __init__(
        self,
        backend: BackendClient,
        session_store: SessionStore,
        view: Optional[ListingView] = None,
        loader: Optional[ListingLoader] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.backend = backend
        self.session_store = session_store
        self.view = view or ListingView()
        self.loader = loader or ListingLoader(backend.http)
        self.notify = notifier or _log_alert
        self.sequencer = FetchSequencer()

        self.loading = False
        self.error: Optional[str] = None
        self.last_alert: Optional[str] = None
        self.loaded_at: Optional[datetime] = None
        self._loads = 0

    @property
    def items(self) -> List[UnifiedItem]:
        return self.view.items

    def get(self, item_id: str) -> UnifiedItem:
        for item in self.view.items:
            if item.id == item_id:
                return item
        raise ListingNotFoundError(item_id)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------
    async def refresh(self) -> bool:
        """Reload both collections; returns True when the view was updated."""
        token = self.sequencer.begin()
        self.loading = True
        self.error = None
        log.info(f"Refreshing listings ({token!r})")

        try:
            result = await self.loader.load(token)
        except FetchFailure as exc:
            if self.sequencer.is_current(token):
                self.error = exc.message
                self.loading = False
            log.error(f"Listing load failed: {exc.message}")
            return False

        if result is None or not self.sequencer.is_current(token):
            log.info(f"Load {token!r} superseded; results dropped")
            return False

        self.view.set_items(normalize(result.assets, result.coins))
        self._loads += 1
        self.loading = False
        self.loaded_at = datetime.now(timezone.utc)
        log.info(f"Listings refreshed: {len(self.view.items)} items")
        return True

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------
    async def _mutate(
        self,
        item_id: str,
        patch: Patch,
        remote: Callable[[UnifiedItem], Awaitable[Any]],
        failure_text: str,
    ) -> bool:
        result = apply_optimistic_mutation(self.view.items, item_id, patch)
        if result.target is None:
            raise ListingNotFoundError(item_id)

        loads_before = self._loads
        self.view.set_items(result.applied)
        optimistic = self.view.items
        try:
            await remote(result.target)
        except MutationFailure as exc:
            log.bind(item_id=item_id).warning(f"Remote call failed for {item_id}: {exc.message}")
            self._rollback(result, optimistic, loads_before)
            self.last_alert = f"{failure_text}: {exc.message}; reverting"
            self.notify(self.last_alert)
            return False

        self.last_alert = None
        return True

    def _rollback(self, result: MutationResult, optimistic: List[UnifiedItem], loads_before: int) -> None:
        if self.view.items is optimistic:
            self.view.set_items(result.previous)
        elif self._loads != loads_before:
            # A load that landed during the call already reflects the server
            log.info(f"Skipping rollback of {result.target.id}: listings reloaded meanwhile")
        else:
            self.view.set_items(revert_mutation(self.view.items, result))

    async def toggle_active(self, item_id: str) -> bool:
        target = self.get(item_id)
        new_state = not target.is_active

        async def remote(item: UnifiedItem) -> Any:
            return await self.backend.update_listing(
                item.endpoint, item.source_id, {"is_active": 1 if new_state else 0}
            )

        log.info(f"Toggling {item_id} is_active -> {new_state}")
        return await self._mutate(item_id, {"is_active": new_state}, remote, "Failed to update status")

    async def remove(self, item_id: str) -> bool:
        async def remote(item: UnifiedItem) -> Any:
            return await self.backend.delete_listing(item.endpoint, item.source_id)

        log.info(f"Deleting {item_id}")
        return await self._mutate(item_id, None, remote, "Failed to delete")

    async def save_edit(self, edited: UnifiedItem) -> bool:
        async def remote(item: UnifiedItem) -> Any:
            return await self.backend.update_listing(edited.endpoint, edited.source_id, to_update_payload(edited))

        log.info(f"Saving edits for {edited.id}")
        return await self._mutate(edited.id, edited, remote, "Failed to update")

    async def create(self, form: Union[AssetCreate, CoinCreate]) -> Dict[str, Any]:
        """Post a new listing, then reload so it appears in the view."""
        if isinstance(form, AssetCreate):
            saved = await self.backend.create_asset(form.to_payload())
        else:
            saved = await self.backend.create_coin(form.to_payload())
        await self.refresh()
        return saved if isinstance(saved, dict) else {}

    # -------------------------------------------------------------------------
    # Permissions
    # -------------------------------------------------------------------------
    def can_manage(self, item: UnifiedItem) -> bool:
        """True when the stored session's user created this listing."""
        auth = self.session_store.load_auth()
        if auth is None or item.created_by is None:
            return False
        return str(item.created_by) == str(auth.user.id)

    def close(self) -> None:
        self.sequencer.close()
        self.view.close()
