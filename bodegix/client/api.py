# bodegix/client/api.py
from typing import Any, Dict, Optional

import httpx


class BodegixApi:
    """Async client for the endpoints the mobile app uses."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def assigned_lockers(self) -> Dict[str, Any]:
        resp = await self._client.get("/api/lockers/assigned")
        resp.raise_for_status()
        return resp.json()

    async def issue_session(
        self,
        locker_id: int,
        ttl_seconds: Optional[int] = None,
        as_url: bool = False,
    ) -> Dict[str, Any]:
        """-> {"code", "expires_at", "ttl_seconds", "payload"}"""
        body: Dict[str, Any] = {"locker_id": locker_id, "as_url": as_url}
        if ttl_seconds is not None:
            body["ttl_seconds"] = ttl_seconds
        resp = await self._client.post("/api/qr-sessions", json=body)
        resp.raise_for_status()
        return resp.json()

    async def session_status(self, code: str) -> str:
        resp = await self._client.get(f"/api/qr-sessions/{code}/status")
        resp.raise_for_status()
        return resp.json().get("status", "pending")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BodegixApi":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
