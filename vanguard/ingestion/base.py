"""Abstract source interface for listing loads."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx

from vanguard.core.errors import FetchFailure

Rows = List[Dict[str, Any]]


class BaseSource(ABC):
    """One external list endpoint returning asset rows, coin rows, or both."""

    name: str
    path: str

    @abstractmethod
    async def fetch(self, client: httpx.AsyncClient, limit: int, offset: int = 0) -> Tuple[Rows, Rows]:
        """Return (asset rows, coin rows) as undecoded dicts."""

    async def _get_json(self, client: httpx.AsyncClient, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            resp = await client.get(self.path, params=params)
        except httpx.HTTPError as exc:
            raise FetchFailure(f"Failed to load {self.name}: {exc}") from exc

        body = _safe_json(resp)
        if not resp.is_success:
            raise FetchFailure.from_response(f"Loading {self.name}", resp.status_code, body)
        if body is None:
            raise FetchFailure(f"Failed to load {self.name}: response is not JSON", resp.status_code)
        return body


def _safe_json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None
