"""Message routes - Support conversation with the management counterpart."""

from fastapi import APIRouter, Depends, HTTPException

from vanguard.api.deps import get_message_thread
from vanguard.core.errors import FetchFailure
from vanguard.schemas.messages import Message, MessageIn
from vanguard.services.message_service import MessageThread

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("", response_model=list[Message])
async def get_messages(refresh: bool = True, thread: MessageThread = Depends(get_message_thread)):
    """Current thread; pulls new messages first unless ``refresh=false``."""
    if refresh:
        try:
            await thread.refresh()
        except FetchFailure as exc:
            raise HTTPException(status_code=502, detail=exc.message)
    return thread.messages


@router.post("", response_model=Message)
async def send_message(payload: MessageIn, thread: MessageThread = Depends(get_message_thread)):
    """Send a message; a failed send comes back with ``failed=true``."""
    message = await thread.send(payload.body)
    if message is None:
        raise HTTPException(status_code=422, detail="Message body is empty")
    return message
