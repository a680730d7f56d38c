"""
HTTP transport for the EcoCash API.

Thin aiohttp wrapper that posts JSON and turns every outcome into either a
decoded JSON object or one of the SDK's error types.
"""

import asyncio
import json
from typing import Any, Protocol

import aiohttp

from ecocash.exceptions import RemoteError, TransportError
from ecocash.utils.logging import get_logger

logger = get_logger("ecocash.transport")

DEFAULT_REQUEST_TIMEOUT = 30.0


class Transport(Protocol):
    """Anything that can post a JSON body and return a JSON object."""

    async def post_json(self, url: str, headers: dict[str, str], body: dict[str, Any]) -> dict[str, Any]: ...

    async def close(self) -> None: ...


def parse_response(status: int, text: str) -> dict[str, Any]:
    """
    Turn a status code and raw body into a JSON object or an error.

    A 2xx response must carry a JSON object. For any other status the error
    message comes from the body's ``message`` or ``error`` field when present.

    Raises:
        RemoteError: Non-2xx status, or a 2xx body that is empty or not a JSON object
    """
    if 200 <= status < 300:
        if not text:
            raise RemoteError("Empty response body", status_code=status)
        try:
            data = json.loads(text)
        except ValueError as e:
            raise RemoteError(f"Invalid JSON response: {text[:200]}", status_code=status, body=text) from e
        if not isinstance(data, dict):
            raise RemoteError(f"Invalid JSON response: {text[:200]}", status_code=status, body=data)
        return data

    message = f"HTTP {status}"
    body: Any = text or None
    if text:
        try:
            body = json.loads(text)
        except ValueError:
            pass
        else:
            if isinstance(body, dict):
                message = body.get("message") or body.get("error") or message
    raise RemoteError(str(message), status_code=status, body=body)


class HttpTransport:
    """
    aiohttp-backed transport.

    The session is created lazily on first use and shared by all calls;
    ``close`` releases it. Safe to call concurrently.

    Example:
        async with HttpTransport(timeout=15.0) as transport:
            data = await transport.post_json(url, {"X-API-KEY": key}, body)
    """

    def __init__(self, timeout: float = DEFAULT_REQUEST_TIMEOUT, max_concurrent: int = 10):
        """
        Initialize transport.

        Args:
            timeout: Per-request timeout in seconds (default: 30)
            max_concurrent: Maximum requests in flight at once (default: 10)
        """
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: aiohttp.ClientSession | None = None
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self._session_lock = asyncio.Lock()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists, creating it if needed."""
        async with self._session_lock:
            if self.session is None or self.session.closed:
                self.session = aiohttp.ClientSession(timeout=self.timeout)
            return self.session

    async def __aenter__(self) -> "HttpTransport":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the session; a later call opens a new one."""
        async with self._session_lock:
            if self.session and not self.session.closed:
                await self.session.close()
            self.session = None

    async def post_json(self, url: str, headers: dict[str, str], body: dict[str, Any]) -> dict[str, Any]:
        """
        POST ``body`` as JSON to ``url``.

        Returns:
            Decoded JSON object from a 2xx response

        Raises:
            TransportError: Connection failure or timeout
            RemoteError: Non-2xx status or unusable 2xx body
        """
        session = await self._ensure_session()

        async with self.semaphore:
            try:
                async with session.post(url, json=body, headers=headers) as response:
                    raw = await response.read()
                    status = response.status
            except (asyncio.TimeoutError, TimeoutError) as e:
                raise TransportError(f"Request to {url} timed out after {self.timeout.total}s") from e
            except aiohttp.ClientError as e:
                raise TransportError(f"Request to {url} failed: {e}") from e

        logger.debug(f"POST {url} -> {status}")
        # Gateway error pages are not always UTF-8; the status code still decides the error
        return parse_response(status, raw.decode("utf-8", errors="replace"))
