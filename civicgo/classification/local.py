from __future__ import annotations
import asyncio
import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, List, Optional

import joblib
import numpy as np
from PIL import Image, UnidentifiedImageError

from ..errors import ProviderError
from ..models import ClassificationResult, Label
from .base import ImageClassifier
from .categories import TOP_K, labels_to_result
from .model_cache import ModelCache

log = logging.getLogger("civicgo.classify")

_default_cache = ModelCache(joblib.load)


def image_features(image_bytes: bytes, size: int = 32) -> np.ndarray:
    """RGB thumbnail flattened to one row of floats in [0, 1]."""
    with Image.open(BytesIO(image_bytes)) as img:
        img = img.convert("RGB").resize((size, size))
        arr = np.asarray(img, dtype=np.float32) / 255.0
    return arr.reshape(1, -1)


class LocalModelClassifier(ImageClassifier):
    """In-process inference with a joblib-saved scikit-learn style model.

    The model must expose ``predict_proba`` and ``classes_``; class names are
    treated like provider labels and go through the shared keyword table.
    """

    name = "local"

    def __init__(self, model_path: Optional[Path], size: int = 32, cache: Optional[ModelCache] = None,
                 loader: Optional[Callable[[str], Any]] = None):
        self.model_path = Path(model_path) if model_path else None
        self.size = size
        if cache is None:
            cache = ModelCache(loader) if loader is not None else _default_cache
        self.cache = cache

    def is_configured(self) -> bool:
        if self.model_path is None:
            return False
        try:
            return self.model_path.exists()
        except OSError as e:
            log.warning("cannot check local model %s: %s", self.model_path, e)
            return False

    async def classify(self, image_bytes: bytes) -> ClassificationResult:
        if not self.is_configured():
            raise ProviderError(self.name, "no local model available")
        try:
            model = await self.cache.get(str(self.model_path))
        except Exception as e:
            raise ProviderError(self.name, f"model failed to load: {e}") from e
        labels = await asyncio.to_thread(self._predict, model, image_bytes)
        return labels_to_result(labels, self.name)

    def _predict(self, model: Any, image_bytes: bytes) -> List[Label]:
        try:
            features = image_features(image_bytes, self.size)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ProviderError(self.name, f"cannot decode image: {e}") from e
        try:
            probs = model.predict_proba(features)[0]
            classes = list(model.classes_)
        except (AttributeError, IndexError, ValueError) as e:
            raise ProviderError(self.name, f"inference failed: {e}") from e
        order = np.argsort(probs)[::-1][:TOP_K]
        return [Label(name=str(classes[i]), score=float(probs[i])) for i in order]
