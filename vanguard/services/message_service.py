"""Support messaging: a merge-by-id thread kept fresh by a cancellable poller."""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Dict, Hashable, Iterable, List, Optional

from vanguard.core.config import settings
from vanguard.core.errors import FetchFailure, MutationFailure
from vanguard.core.logging import get_logger
from vanguard.schemas.messages import Message
from vanguard.services.backend_client import BackendClient
from vanguard.services.unifier import parse_timestamp

log = get_logger("message_service")

_temp_ids = itertools.count(1)


def _message_key(message: Message) -> Hashable:
    if message.id is not None:
        return ("id", str(message.id))
    return ("content", message.from_user_id, message.to_user_id, message.body, message.created_at)


class MessageThread:
    """Conversation between the current user and one counterpart.

    The counterpart defaults to MANAGEMENT_USER_ID but is per-thread so a
    deployment with several support staff can open one thread per staff id.
    """

    def __init__(
        self,
        backend: BackendClient,
        counterpart_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ):
        self.backend = backend
        self.counterpart_id = counterpart_id if counterpart_id is not None else settings.MANAGEMENT_USER_ID
        self.user_id = user_id
        self.messages: List[Message] = []

    def merge(self, batch: Iterable[Message]) -> int:
        """Upsert messages by id; returns how many were new. Repeating a batch is a no-op."""
        index: Dict[Hashable, int] = {_message_key(m): i for i, m in enumerate(self.messages)}
        merged = list(self.messages)
        added = 0
        for message in batch:
            key = _message_key(message)
            if key in index:
                merged[index[key]] = message
            else:
                index[key] = len(merged)
                merged.append(message)
                added += 1
        self.messages = sorted(merged, key=lambda m: parse_timestamp(m.created_at))
        return added

    def is_mine(self, message: Message) -> bool:
        if self.user_id is not None:
            return message.from_user_id == self.user_id
        return message.from_user_id != self.counterpart_id

    async def refresh(self) -> int:
        batch = await self.backend.fetch_messages(self.counterpart_id, self.user_id)
        added = self.merge(batch)
        if added:
            log.debug(f"Merged {added} new message(s) with counterpart={self.counterpart_id}")
        return added

    async def send(self, body: str) -> Optional[Message]:
        """Show the message immediately, then swap in the saved copy or mark it failed."""
        text = (body or "").strip()
        if not text:
            return None

        temp = Message(
            id=f"tmp-{next(_temp_ids)}",
            from_user_id=self.user_id if self.user_id is not None else -1,
            to_user_id=self.counterpart_id,
            body=text,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.messages = self.messages + [temp]

        try:
            saved = await self.backend.send_message(self.counterpart_id, text, self.user_id)
        except MutationFailure as exc:
            log.warning(f"Failed to send message: {exc.message}")
            failed = temp.model_copy(update={"failed": True})
            self.messages = [failed if m.id == temp.id else m for m in self.messages]
            return failed

        remaining = [m for m in self.messages if m.id != temp.id]
        self.messages = remaining
        self.merge([saved])
        return saved


class MessagePoller:
    """Repeating task: refresh the thread every interval until stopped."""

    def __init__(self, thread: MessageThread, interval_seconds: Optional[float] = None):
        self.thread = thread
        self.interval = interval_seconds if interval_seconds is not None else settings.MESSAGE_POLL_INTERVAL_SECONDS
        self.last_error: Optional[str] = None
        self.polls = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        log.info(f"Message poller started (interval: {self.interval}s)")
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            try:
                await self.thread.refresh()
                self.last_error = None
            except asyncio.CancelledError:
                log.info("Message poller cancelled")
                break
            except FetchFailure as exc:
                # Keep polling; the next tick may succeed
                self.last_error = exc.message
                log.warning(f"Message poll failed: {exc.message}")
            self.polls += 1
            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                log.info("Message poller cancelled")
                break

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
