from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..errors import ProviderError
from ..models import ClassificationResult

log = logging.getLogger("civicgo.classify")

DEFAULT_TIMEOUT = 12.0


class ImageClassifier(ABC):
    """Contract every image classification provider implements.

    ``classify`` either returns a result or raises :class:`ProviderError`;
    adapters never hand back placeholder data of their own.
    """

    name: str = "classifier"

    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    async def classify(self, image_bytes: bytes) -> ClassificationResult:
        ...

    async def aclose(self) -> None:
        return None


class HTTPImageClassifier(ImageClassifier):
    """Shared plumbing for providers reached over HTTPS."""

    def __init__(self, api_key: Optional[str], timeout: float = DEFAULT_TIMEOUT,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _post_json(self, url: str, **kwargs) -> Any:
        if not self.is_configured():
            raise ProviderError(self.name, "API key not configured")
        try:
            resp = await self.client.post(url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, f"request timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 401:
                log.error("%s rejected the API key (401); check the configured credential", self.name)
            raise ProviderError(self.name, f"HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"request failed: {e}") from e
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(self.name, "response is not JSON") from e

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}
