from __future__ import annotations
import base64
from typing import Any, List, Optional

import httpx

from ..errors import ProviderError
from ..models import ClassificationResult, Label
from .base import DEFAULT_TIMEOUT, HTTPImageClassifier
from .categories import labels_to_result

CLARIFAI_API_BASE = "https://api.clarifai.com/v2"


class ClarifaiClassifier(HTTPImageClassifier):
    """Clarifai general image recognition (free tier, 5,000 operations/month)."""

    name = "clarifai"

    def __init__(self, api_key: Optional[str], model_id: str = "general-image-recognition",
                 model_version: str = "aa7f35c01e0642fda5cf400f543e7c7f",
                 timeout: float = DEFAULT_TIMEOUT, client: Optional[httpx.AsyncClient] = None):
        super().__init__(api_key, timeout=timeout, client=client)
        self.model_id = model_id
        self.model_version = model_version

    @property
    def url(self) -> str:
        return f"{CLARIFAI_API_BASE}/models/{self.model_id}/versions/{self.model_version}/outputs"

    async def classify(self, image_bytes: bytes) -> ClassificationResult:
        body = {"inputs": [{"data": {"image": {"base64": base64.b64encode(image_bytes).decode("ascii")}}}]}
        payload = await self._post_json(
            self.url, json=body, headers={"Authorization": f"Key {self.api_key}"}
        )
        return labels_to_result(self._concepts(payload), self.name)

    def _concepts(self, payload: Any) -> List[Label]:
        try:
            concepts = payload["outputs"][0]["data"]["concepts"]
            return [Label(name=str(c["name"]), score=float(c["value"])) for c in concepts]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(self.name, f"unexpected response shape: {e!r}") from e
