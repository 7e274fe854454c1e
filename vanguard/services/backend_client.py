"""HTTP client for the external Vanguard REST API (writes + messaging)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from vanguard.core.config import settings
from vanguard.core.errors import FetchFailure, MutationFailure
from vanguard.core.logging import get_logger
from vanguard.schemas.messages import Message

log = get_logger("backend_client")


def _body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


class BackendClient:
    """Thin async wrapper over the listing and message endpoints.

    Non-2xx responses raise MutationFailure (writes) or FetchFailure (reads)
    carrying the body's ``message``/``error`` when present.
    """

    def __init__(self, http: Optional[httpx.AsyncClient] = None, base_url: Optional[str] = None):
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            base_url=base_url or settings.BACKEND_URL,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def _send(
        self,
        verb: str,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        error_cls: type = MutationFailure,
    ) -> Any:
        try:
            resp = await self.http.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            log.error(f"{verb} {path} transport error: {exc}")
            raise error_cls(f"{verb} failed: {exc}") from exc

        body = _body(resp)
        if not resp.is_success:
            log.warning(f"{verb} {path} returned {resp.status_code}")
            raise error_cls.from_response(verb, resp.status_code, body)
        return body

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------
    async def update_listing(self, endpoint: str, source_id: int, payload: Dict[str, Any]) -> Any:
        return await self._send("Update", "PUT", f"/api/{endpoint}/{source_id}", json=payload)

    async def delete_listing(self, endpoint: str, source_id: int) -> None:
        await self._send("Delete", "DELETE", f"/api/{endpoint}/{source_id}")

    async def create_asset(self, payload: Dict[str, Any]) -> Any:
        return await self._send("Create", "POST", "/api/tesla", json=payload)

    async def create_coin(self, payload: Dict[str, Any]) -> Any:
        return await self._send("Create", "POST", "/api/coins", json=payload)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------
    @staticmethod
    def _user_headers(user_id: Optional[int]) -> Dict[str, str]:
        return {"x-user-id": str(user_id)} if user_id is not None else {}

    async def fetch_messages(self, counterpart_id: int, user_id: Optional[int] = None) -> List[Message]:
        params: Dict[str, Any] = {"user_id": counterpart_id}
        if user_id is not None:
            params["userA"] = user_id
        body = await self._send(
            "Load messages",
            "GET",
            "/api/messages",
            params=params,
            headers=self._user_headers(user_id),
            error_cls=FetchFailure,
        )
        rows = body if isinstance(body, list) else []
        try:
            return [Message.model_validate(row) for row in rows if isinstance(row, dict)]
        except ValidationError as exc:
            raise FetchFailure(f"Malformed message payload: {exc.error_count()} error(s)") from exc

    async def send_message(self, counterpart_id: int, body: str, user_id: Optional[int] = None) -> Message:
        saved = await self._send(
            "Send",
            "POST",
            "/api/messages",
            json={"to_user_id": counterpart_id, "body": body},
            headers=self._user_headers(user_id),
        )
        if not isinstance(saved, dict):
            raise MutationFailure("Send failed: server did not return the saved message")
        try:
            return Message.model_validate(saved)
        except ValidationError as exc:
            raise MutationFailure("Send failed: saved message is malformed") from exc
