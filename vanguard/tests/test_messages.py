"""Support messaging tests"""

import asyncio

import pytest

from vanguard.core.errors import FetchFailure
from vanguard.schemas.messages import Message
from vanguard.services.message_service import MessagePoller, MessageThread


def message(msg_id, sender=9, recipient=1, body="hello", created_at="2025-01-01T10:00:00Z"):
    return {
        "id": msg_id,
        "from_user_id": sender,
        "to_user_id": recipient,
        "body": body,
        "created_at": created_at,
    }


@pytest.fixture
def thread(backend_client):
    return MessageThread(backend_client, counterpart_id=1, user_id=9)


class TestMerge:
    def test_repeated_batch_is_idempotent(self, thread):
        batch = [Message(**message(1)), Message(**message(2, created_at="2025-01-01T10:05:00Z"))]
        assert thread.merge(batch) == 2
        assert thread.merge(batch) == 0
        assert [m.id for m in thread.messages] == [1, 2]

    def test_ordered_by_timestamp(self, thread):
        thread.merge([Message(**message(2, created_at="2025-01-02T00:00:00Z"))])
        thread.merge([Message(**message(1, created_at="2025-01-01T00:00:00Z"))])
        assert [m.id for m in thread.messages] == [1, 2]

    def test_update_replaces_existing(self, thread):
        thread.merge([Message(**message(1))])
        thread.merge([Message(**message(1), is_read=True)])
        assert len(thread.messages) == 1
        assert thread.messages[0].is_read is True

    def test_is_mine(self, thread):
        assert thread.is_mine(Message(**message(1, sender=9))) is True
        assert thread.is_mine(Message(**message(2, sender=1, recipient=9))) is False


class TestRefresh:
    @pytest.mark.asyncio
    async def test_fetch_sends_user_params(self, thread, fake_backend):
        fake_backend.on("GET", "/api/messages", body=[message(1), message(2, sender=1, recipient=9)])
        assert await thread.refresh() == 2

        request = fake_backend.calls[-1]
        assert request.url.params["user_id"] == "1"
        assert request.url.params["userA"] == "9"
        assert request.headers["x-user-id"] == "9"

    @pytest.mark.asyncio
    async def test_fetch_failure(self, thread, fake_backend):
        fake_backend.on("GET", "/api/messages", status=500, body={"error": "Inbox offline"})
        with pytest.raises(FetchFailure) as exc_info:
            await thread.refresh()
        assert exc_info.value.message == "Inbox offline"


class TestSend:
    @pytest.mark.asyncio
    async def test_saved_message_replaces_temporary(self, thread, fake_backend):
        fake_backend.on("POST", "/api/messages", status=201, body=message(77, body="Need help"))

        saved = await thread.send("  Need help  ")
        assert saved.id == 77
        assert [m.id for m in thread.messages] == [77]
        assert fake_backend.json_body() == {"to_user_id": 1, "body": "Need help"}

    @pytest.mark.asyncio
    async def test_failed_send_is_marked(self, thread, fake_backend):
        fake_backend.on("POST", "/api/messages", status=500, body={"message": "nope"})

        result = await thread.send("Hello?")
        assert result.failed is True
        assert result.is_temporary
        assert len(thread.messages) == 1
        assert thread.messages[0].failed is True

    @pytest.mark.asyncio
    async def test_blank_body_not_sent(self, thread, fake_backend):
        assert await thread.send("   ") is None
        assert fake_backend.calls == []


class TestPoller:
    @pytest.mark.asyncio
    async def test_polls_until_stopped(self, thread, fake_backend):
        fake_backend.on("GET", "/api/messages", body=[message(1)])
        poller = MessagePoller(thread, interval_seconds=0.01)

        poller.start()
        assert poller.running
        await asyncio.sleep(0.1)
        await poller.stop()

        assert not poller.running
        assert poller.polls >= 2
        assert len(thread.messages) == 1

        polls = poller.polls
        await asyncio.sleep(0.05)
        assert poller.polls == polls

    @pytest.mark.asyncio
    async def test_poll_errors_are_recorded(self, thread, fake_backend):
        fake_backend.on("GET", "/api/messages", status=503, body=None)
        poller = MessagePoller(thread, interval_seconds=0.01)

        poller.start()
        await asyncio.sleep(0.05)
        assert poller.running
        await poller.stop()

        assert poller.last_error == "Load messages failed (503)"
