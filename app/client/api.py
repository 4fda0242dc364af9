"""
Async HTTP client for the LinkUp API.

Error envelopes come back as ApiError carrying the server's error code, so
callers branch on `code` the same way in-process callers branch on the
exception type.
"""

from typing import Any, Dict, List, Optional

import httpx

from app.schemas.connection import ConnectionRequestResponse, ConnectionResponse, ConnectionSummary
from app.schemas.message import ConversationSummary, Counters, DirectMessageResponse
from app.schemas.profile import ProfileResponse


class ApiError(Exception):
    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"{status_code} {code}: {message}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            error = response.json().get("error") or {}
        except ValueError:
            error = {}
        return cls(
            status_code=response.status_code,
            code=error.get("code", "HTTP_ERROR"),
            message=error.get("message", response.text),
            details=error.get("details"),
        )


class LinkUpClient:
    """One coroutine per API route"""

    def __init__(
        self,
        base_url: str,
        token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        response = await self._http.request(method, url, **kwargs)
        if response.is_error:
            raise ApiError.from_response(response)
        return response.json()

    # ============ Profiles ============

    async def create_profile(self, **fields) -> ProfileResponse:
        data = await self._request("POST", "/profiles", json=fields)
        return ProfileResponse.model_validate(data)

    async def get_my_profile(self) -> ProfileResponse:
        return ProfileResponse.model_validate(await self._request("GET", "/profiles/me"))

    async def update_profile(self, **fields) -> ProfileResponse:
        data = await self._request("PATCH", "/profiles/me", json=fields)
        return ProfileResponse.model_validate(data)

    async def list_profiles(self, skip: int = 0, limit: int = 100) -> List[ProfileResponse]:
        data = await self._request("GET", "/profiles", params={"skip": skip, "limit": limit})
        return [ProfileResponse.model_validate(p) for p in data]

    async def get_profile(self, user_id: str) -> ProfileResponse:
        return ProfileResponse.model_validate(await self._request("GET", f"/profiles/{user_id}"))

    async def is_username_available(self, username: str) -> bool:
        data = await self._request("GET", "/profiles/username-available", params={"username": username})
        return data["available"]

    # ============ Connections ============

    async def send_request(self, receiver_id: str) -> ConnectionRequestResponse:
        data = await self._request("POST", "/connections/requests", json={"receiver_id": receiver_id})
        return ConnectionRequestResponse.model_validate(data)

    async def list_incoming(self) -> List[ConnectionRequestResponse]:
        data = await self._request("GET", "/connections/requests/incoming")
        return [ConnectionRequestResponse.model_validate(r) for r in data]

    async def list_outgoing(self) -> List[ConnectionRequestResponse]:
        data = await self._request("GET", "/connections/requests/outgoing")
        return [ConnectionRequestResponse.model_validate(r) for r in data]

    async def accept(self, request_id: str) -> ConnectionResponse:
        data = await self._request("POST", f"/connections/requests/{request_id}/accept")
        return ConnectionResponse.model_validate(data)

    async def decline(self, request_id: str) -> None:
        await self._request("POST", f"/connections/requests/{request_id}/decline")

    async def list_connections(self) -> List[ConnectionSummary]:
        data = await self._request("GET", "/connections")
        return [ConnectionSummary.model_validate(c) for c in data]

    async def disconnect(self, connection_id: str) -> None:
        await self._request("DELETE", f"/connections/{connection_id}")

    # ============ Messages ============

    async def send_message(
        self,
        other_user_id: str,
        content: str = "",
        media_url: Optional[str] = None,
        media_type: Optional[str] = None,
    ) -> DirectMessageResponse:
        payload = {"content": content, "media_url": media_url, "media_type": media_type}
        data = await self._request("POST", f"/messages/{other_user_id}", json=payload)
        return DirectMessageResponse.model_validate(data)

    async def get_conversation(self, other_user_id: str) -> List[DirectMessageResponse]:
        data = await self._request("GET", f"/messages/{other_user_id}")
        return [DirectMessageResponse.model_validate(m) for m in data["messages"]]

    async def list_conversations(self) -> List[ConversationSummary]:
        data = await self._request("GET", "/messages/conversations")
        return [ConversationSummary.model_validate(c) for c in data]

    async def mark_read(self, other_user_id: str) -> int:
        data = await self._request("POST", f"/messages/{other_user_id}/read")
        return data["updated"]

    # ============ Counters ============

    async def get_counters(self) -> Counters:
        return Counters.model_validate(await self._request("GET", "/counters"))
