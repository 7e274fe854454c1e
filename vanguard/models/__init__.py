from vanguard.models.base import Base
from vanguard.models.session_entry import SessionEntry

__all__ = [
    "Base",
    "SessionEntry",
]
