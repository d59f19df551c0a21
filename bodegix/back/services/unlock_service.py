# bodegix/back/services/unlock_service.py
import logging
from typing import Any, Dict, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

LOCAL_ENVS = {"local", "dev", "test"}


class UnlockActuator(Protocol):
    async def unlock(self, locker_id: int) -> bool: ...


class LoggingUnlockActuator:
    """Used when no locker controller is configured. Local / dev only."""

    async def unlock(self, locker_id: int) -> bool:
        logger.warning("unlock requested for locker=%s but no controller is configured", locker_id)
        return True


class HttpUnlockActuator:
    """
    Locker controller reachable over HTTP.

    POST {base_url}/lockers/{locker_id}/unlock  ->  {"ok": true}
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def unlock(self, locker_id: int) -> bool:
        url = f"{self.base_url}/lockers/{locker_id}/unlock"
        body: Dict[str, Any] = {"action": "OPEN"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(url, json=body)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("unlock failed locker=%s: %s", locker_id, e)
            return False

        ok = bool(data.get("ok", False)) if isinstance(data, dict) else False
        if not ok:
            logger.error("locker controller refused unlock locker=%s: %s", locker_id, data)
        return ok


def build_actuator(base_url: str, timeout: float = 5.0) -> UnlockActuator:
    if base_url:
        return HttpUnlockActuator(base_url, timeout=timeout)
    return LoggingUnlockActuator()


def check_actuator_config(base_url: str, env: str) -> None:
    """Refuse to run a non-local deployment that could never open a locker."""
    if not base_url and env not in LOCAL_ENVS:
        raise RuntimeError(f"LOCKER_CONTROLLER_URL is required when ENV={env}")
