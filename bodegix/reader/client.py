# bodegix/reader/client.py
from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

SCAN_ENDPOINT = "/api/qr/scan"
NETWORK_ERROR = "network_error"


@dataclass
class ScanReply:
    """What the backend said about one scan."""
    outcome: str
    status_code: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def granted(self) -> bool:
        return self.status_code == 200 and self.outcome == "granted"


class ScanClient:
    """Posts extracted codes to the backend on behalf of one reader."""

    def __init__(
        self,
        base_url: str,
        reader_id: int,
        api_key: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ValueError("BODEGIX_API_URL configuration is required")
        if not reader_id or not api_key:
            raise ValueError("READER_ID and READER_API_KEY configuration is required")

        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "X-Reader-Id": str(reader_id),
                "X-Reader-Api-Key": api_key,
            },
        )
        logger.info("scan client ready for reader=%s at %s", reader_id, base_url)

    def scan(self, code: str) -> ScanReply:
        try:
            resp = self._client.post(SCAN_ENDPOINT, json={"code": code})
        except httpx.TransportError as e:
            logger.error("scan request failed: %s", e)
            return ScanReply(outcome=NETWORK_ERROR)

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code == 200:
            return ScanReply(outcome=data.get("outcome", "granted"), status_code=200, data=data)

        detail = data.get("detail") if isinstance(data, dict) else None
        if isinstance(detail, dict) and "outcome" in detail:
            outcome = detail["outcome"]
        else:
            outcome = f"http_{resp.status_code}"
        return ScanReply(outcome=outcome, status_code=resp.status_code, data=data)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ScanClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
