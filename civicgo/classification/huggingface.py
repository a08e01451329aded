from __future__ import annotations
from typing import Any, List, Optional

import httpx

from ..errors import ProviderError
from ..models import ClassificationResult, Label
from .base import DEFAULT_TIMEOUT, HTTPImageClassifier
from .categories import labels_to_result

HF_INFERENCE_BASE = "https://api-inference.huggingface.co/models"


class HuggingFaceClassifier(HTTPImageClassifier):
    name = "huggingface"

    def __init__(self, api_key: Optional[str], model: str = "microsoft/resnet-50",
                 timeout: float = DEFAULT_TIMEOUT, client: Optional[httpx.AsyncClient] = None):
        super().__init__(api_key, timeout=timeout, client=client)
        self.model = model

    async def classify(self, image_bytes: bytes) -> ClassificationResult:
        headers = self._headers()
        headers["Content-Type"] = "application/octet-stream"
        payload = await self._post_json(f"{HF_INFERENCE_BASE}/{self.model}", content=image_bytes, headers=headers)
        return labels_to_result(self._labels(payload), self.name)

    def _labels(self, payload: Any) -> List[Label]:
        if not isinstance(payload, list) or not payload:
            raise ProviderError(self.name, "expected a non-empty list of labels")
        try:
            labels = [Label(name=str(item["label"]), score=float(item["score"])) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(self.name, f"unexpected response shape: {e!r}") from e
        # the inference API sorts by score already; don't rely on it
        labels.sort(key=lambda l: l.score, reverse=True)
        return labels
