"""
Network reachability probes used to decide whether to queue a request.
"""

import asyncio
import socket

from ecocash.utils.logging import get_logger

logger = get_logger("ecocash.connectivity")


class DnsConnectivityProbe:
    """
    Reports the network as reachable when a DNS lookup succeeds.

    Any resolver error or timeout counts as offline.
    """

    def __init__(self, host: str = "google.com", port: int = 443, timeout: float = 3.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    async def __call__(self) -> bool:
        loop = asyncio.get_running_loop()
        try:
            addresses = await asyncio.wait_for(
                loop.getaddrinfo(self.host, self.port, type=socket.SOCK_STREAM),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError, TimeoutError) as e:
            logger.debug(f"DNS lookup of {self.host} failed: {e}")
            return False
        return bool(addresses)


class StaticConnectivityProbe:
    """Probe with a fixed answer; flip ``online`` to simulate outages."""

    def __init__(self, online: bool = True):
        self.online = online

    async def __call__(self) -> bool:
        return self.online
