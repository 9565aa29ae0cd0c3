from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx


@dataclass
class RequestPolicy:
    timeout_s: float = 30.0
    max_retries: int = 2
    base_backoff_s: float = 0.5
    max_backoff_s: float = 5.0
    user_agent: str = "PlayCode/0.1"


class JsonApiClient:
    """
    Small async JSON client shared by the third-party integrations.

    Transport errors are retried with exponential backoff; HTTP error statuses
    are returned to the caller untouched. `transport` lets tests plug in an
    `httpx.MockTransport`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        policy: Optional[RequestPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.policy = policy or RequestPolicy()
        self.headers = {"User-Agent": self.policy.user_agent, "Content-Type": "application/json"}
        if headers:
            self.headers.update(headers)
        self._transport = transport

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        last_err: Optional[Exception] = None
        for attempt in range(self.policy.max_retries + 1):
            try:
                async with httpx.AsyncClient(
                    base_url=self.base_url,
                    headers=self.headers,
                    timeout=self.policy.timeout_s,
                    transport=self._transport,
                ) as client:
                    return await client.request(method, path, json=json, params=params)
            except httpx.TransportError as e:
                last_err = e
                if attempt >= self.policy.max_retries:
                    break
                backoff = min(self.policy.max_backoff_s, self.policy.base_backoff_s * (2**attempt))
                await asyncio.sleep(backoff)
        raise last_err or RuntimeError("request failed")

    async def get(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def put(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)
