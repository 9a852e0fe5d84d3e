"""Network reachability checks consulted before each remote attempt."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class ConnectivityChecker(Protocol):
    async def is_network_available(self) -> bool: ...


class StaticConnectivity:
    """Fixed answer, used for offline mode and in tests."""

    def __init__(self, online: bool = True) -> None:
        self.online = online

    async def is_network_available(self) -> bool:
        return self.online


class SocketConnectivityChecker:
    """Reports the network as available when a TCP connection to the API host opens."""

    def __init__(self, base_url: str, *, timeout: float = 3.0) -> None:
        parsed = urlparse(base_url)
        if not parsed.hostname:
            raise ValueError(f"Cannot derive a host from {base_url!r}")
        self.host = parsed.hostname
        self.port = parsed.port or (443 if parsed.scheme == "https" else 80)
        self._timeout = timeout

    async def is_network_available(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=self._timeout
            )
        except (OSError, asyncio.TimeoutError) as exc:
            logger.debug("Network unreachable (%s:%s): %s", self.host, self.port, exc)
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as exc:
            logger.debug("Connectivity probe did not close cleanly: %s", exc)
        return True
