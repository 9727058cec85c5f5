from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .config import FitnessConfig
from .exceptions import ProviderAuthError, ProviderError, ProviderRateLimitError

logger = logging.getLogger(__name__)


class FitnessHttpClient:
    """Shared HTTP session for provider activity queries and token refreshes."""

    def __init__(
        self,
        config: FitnessConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or FitnessConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> FitnessHttpClient:
        limits = httpx.Limits(max_connections=self.config.max_connections)
        self._client = httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            limits=limits,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "FitnessHttpClient must be used as async context manager"
            )
        return self._client

    async def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
    ) -> Any:
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.config.max_retries:
            try:
                response = await self.client.request(
                    method=method,
                    url=url,
                    params=params,
                    data=data,
                    json=json_data,
                    headers=headers,
                    auth=auth,
                )

                if response.status_code in (400, 401, 403) and "oauth" in url:
                    raise ProviderAuthError(
                        f"Token refresh rejected: {response.text[:200]}",
                        status_code=response.status_code,
                    )
                if response.status_code in (401, 403):
                    raise ProviderAuthError(
                        "Access token rejected", status_code=response.status_code
                    )
                if response.status_code == 429:
                    wait_time = 2 ** retry_count
                    logger.warning(f"Rate limited by {url}, waiting {wait_time}s...")
                    last_error = ProviderRateLimitError(
                        "Rate limit exceeded", status_code=429
                    )
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                if response.status_code >= 500:
                    wait_time = 2 ** retry_count
                    logger.warning(
                        f"Server error {response.status_code} from {url}, "
                        f"retrying in {wait_time}s..."
                    )
                    last_error = ProviderError(
                        f"Server error {response.status_code}",
                        status_code=response.status_code,
                    )
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                if response.status_code >= 400:
                    raise ProviderError(
                        f"{method} {url} failed: {response.status_code}",
                        status_code=response.status_code,
                    )

                return response.json()

            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Timeout calling {url}, retrying ({retry_count})...")
                    await asyncio.sleep(2)

            except httpx.RequestError as e:
                last_error = e
                logger.error(f"Network error calling {url}: {e}")
                break

        if isinstance(last_error, ProviderError):
            raise last_error
        raise ProviderError(f"Request failed after {retry_count} retries: {last_error}")

    async def get_json(
        self,
        url: str,
        access_token: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return await self.request(
            "GET",
            url,
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )
