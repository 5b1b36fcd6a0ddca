"""
Request/response transports for the native fast-path channel.

LocalTransport calls a MediaStore in-process; HttpTransport talks to the
FastAPI service in native_app.py. Both raise NativeMediaError on failure.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from mediacache.errors import NativeMediaError
from mediacache.mediastore import MediaStore


class NativeTransport(ABC):
    """One method call in, one result (or NativeMediaError) out."""

    @abstractmethod
    async def invoke(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        ...

    async def close(self):
        pass


class LocalTransport(NativeTransport):
    """
    Runs MediaStore calls in the default thread pool so file scanning and
    image decoding never block the event loop.
    """

    def __init__(self, store: MediaStore):
        self.store = store

    async def invoke(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.store.invoke, method, arguments)


class HttpTransport(NativeTransport):
    """
    Client for the native media HTTP service.

    Each method is a POST to /native/{method} with the arguments as the JSON
    body. Thumbnails come back as image bytes (204 when absent), everything
    else as JSON.
    """

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._owns_client = client is None

    async def invoke(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.post(f"/native/{method}", json=arguments or {})
        except httpx.HTTPError as e:
            raise NativeMediaError(NativeMediaError.TRANSPORT_ERROR,
                                   f"Native service unreachable at {self.base_url}", str(e)) from e

        if response.status_code >= 400:
            raise self._error_from(response)
        if response.status_code == 204:
            return None
        if response.headers.get("content-type", "").startswith("image/"):
            return response.content

        data = response.json()
        if method == "getPhotosCount":
            return int(data["count"])
        return data

    @staticmethod
    def _error_from(response: httpx.Response) -> NativeMediaError:
        try:
            body = response.json()
            return NativeMediaError(body.get("code", NativeMediaError.TRANSPORT_ERROR),
                                    body.get("message", response.reason_phrase),
                                    body.get("details"))
        except ValueError:
            return NativeMediaError(NativeMediaError.TRANSPORT_ERROR,
                                    f"HTTP {response.status_code}: {response.text[:100]}")

    async def close(self):
        if self._owns_client:
            await self._client.aclose()
