"""Support message schema"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class Message(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    from_user_id: int
    to_user_id: int
    body: str
    created_at: Optional[str] = None
    is_read: bool = False
    failed: bool = False

    @property
    def is_temporary(self) -> bool:
        return isinstance(self.id, str) and self.id.startswith("tmp-")


class MessageIn(BaseModel):
    body: str
