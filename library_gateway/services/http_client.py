import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from library_gateway.config import settings
from library_gateway.exceptions import NotFoundError, UpstreamError, UpstreamUnavailableError

logger = logging.getLogger(__name__)


class ServiceHTTPClient:
    """Pooled async HTTP client bound to one collaborator service.

    Transport failures become ``UpstreamUnavailableError``, a 404 becomes
    ``NotFoundError`` and any other non-2xx status becomes ``UpstreamError``.
    Only GET requests are retried.
    """

    def __init__(
        self,
        service: str,
        base_url: str,
        *,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        backoff: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.service = service
        self.base_url = base_url.rstrip("/")
        self.retries = settings.http_retries if retries is None else retries
        self.backoff = settings.http_retry_backoff if backoff is None else backoff

        limits = httpx.Limits(
            max_keepalive_connections=settings.http_max_keepalive,
            max_connections=settings.http_max_connections,
            keepalive_expiry=30.0,
        )
        read_timeout = settings.http_timeout if timeout is None else timeout
        client_timeout = httpx.Timeout(
            timeout=read_timeout,
            connect=min(settings.http_connect_timeout, read_timeout),
        )

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            limits=limits,
            timeout=client_timeout,
            transport=transport,
        )

    async def get(self, path: str, **kwargs) -> Any:
        """GET with exponential backoff on transport errors."""
        attempts = max(1, self.retries + 1)
        for attempt in range(attempts):
            try:
                response = await self._client.get(path, **kwargs)
            except httpx.RequestError as e:
                if attempt < attempts - 1:
                    wait_time = self.backoff * (2 ** attempt)
                    logger.warning(
                        f"{self.service}: GET {path} failed ({e!r}), retrying in {wait_time:.2f}s"
                    )
                    await asyncio.sleep(wait_time)
                    continue
                logger.error(f"{self.service}: GET {path} failed after {attempts} attempt(s): {e!r}")
                raise UpstreamUnavailableError(self.service, str(e) or type(e).__name__) from e
            return self._decode(response)
        raise UpstreamUnavailableError(self.service, "no attempt made")  # pragma: no cover

    async def post(self, path: str, **kwargs) -> Any:
        return await self._send("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self._send("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> Any:
        return await self._send("PATCH", path, **kwargs)

    async def _send(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"{self.service}: {method} {path} failed: {e!r}")
            raise UpstreamUnavailableError(self.service, str(e) or type(e).__name__) from e
        return self._decode(response)

    def _decode(self, response: httpx.Response) -> Any:
        request = response.request
        logger.debug(f"{self.service}: {request.method} {request.url} -> {response.status_code}")

        if response.status_code == 404:
            raise NotFoundError(f"{self.service}: {request.url.path} not found")
        if response.is_error:
            logger.error(
                f"{self.service}: {request.method} {request.url.path} returned "
                f"{response.status_code} - {response.text[:200]}"
            )
            raise UpstreamError(
                self.service,
                f"{request.method} {request.url.path} returned {response.status_code}",
                response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(self.service, f"invalid JSON from {request.url.path}", response.status_code) from e

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# One pooled client per collaborator, shared by every request
_clients: Dict[str, ServiceHTTPClient] = {}


async def get_http_client(service: str) -> ServiceHTTPClient:
    """Return the shared client for ``service``, creating it on first use."""
    client = _clients.get(service)
    if client is None:
        base_url = settings.service_urls()[service]
        client = ServiceHTTPClient(service, base_url)
        _clients[service] = client
    return client


async def cleanup_http_clients():
    """Close every shared client."""
    clients = list(_clients.values())
    _clients.clear()
    for client in clients:
        await client.close()
