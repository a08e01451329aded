# classification/hybrid.py
"""Provider fallback chain.

Providers are asked one at a time in a fixed order and the first genuine
answer wins. They have separate free-tier quotas, so once one has answered
the rest are left alone. When nothing answers, the mock classifier does.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Dict, List, Optional, Sequence

import httpx

from ..config import Settings
from ..models import ClassificationResult, ProviderReport, ProviderStatus
from .base import ImageClassifier
from .clarifai import ClarifaiClassifier
from .huggingface import HuggingFaceClassifier
from .local import LocalModelClassifier
from .mock import mock_classify
from .perplexity import PerplexityClassifier

log = logging.getLogger("civicgo.classify")

DEFAULT_PROVIDER_ORDER = ("clarifai", "huggingface", "perplexity", "local")


def build_classifiers(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> List[ImageClassifier]:
    by_name: Dict[str, ImageClassifier] = {
        "clarifai": ClarifaiClassifier(
            settings.clarifai_api_key, model_id=settings.clarifai_model_id,
            model_version=settings.clarifai_model_version, timeout=settings.classify_timeout, client=client,
        ),
        "huggingface": HuggingFaceClassifier(
            settings.huggingface_api_key, model=settings.huggingface_model,
            timeout=settings.classify_timeout, client=client,
        ),
        "perplexity": PerplexityClassifier(
            settings.perplexity_api_key, model=settings.perplexity_model,
            timeout=settings.classify_timeout, client=client,
        ),
        "local": LocalModelClassifier(settings.local_model_path, size=settings.local_model_size),
    }
    return [by_name[name] for name in DEFAULT_PROVIDER_ORDER]


async def classify_with_fallback(image_bytes: bytes, classifiers: Sequence[ImageClassifier]) -> ClassificationResult:
    """Never raises; degrades to :func:`mock_classify` when no provider answers."""
    for classifier in classifiers:
        try:
            if not classifier.is_configured():
                log.debug("skipping %s (not configured)", classifier.name)
                continue
            log.info("attempting image analysis with %s", classifier.name)
            result = await classifier.classify(image_bytes)
        except Exception as e:
            log.warning("%s failed: %s", classifier.name, e)
            continue
        if result.is_mock:
            log.warning("%s returned placeholder data, trying next provider", classifier.name)
            continue
        log.info("%s analysis successful: %s (%.2f)", classifier.name, result.category.value, result.confidence)
        return result

    log.warning("no provider produced a result, using mock classification")
    return mock_classify(image_bytes)


class HybridClassifier:
    def __init__(self, classifiers: Sequence[ImageClassifier], force_mock: bool = False,
                 deadline: Optional[float] = None):
        self.classifiers = list(classifiers)
        self.force_mock = force_mock
        self.deadline = deadline

    @classmethod
    def from_settings(cls, settings: Settings) -> "HybridClassifier":
        return cls(build_classifiers(settings), force_mock=settings.force_ai_fallback,
                   deadline=settings.classify_deadline)

    async def classify(self, image_bytes: bytes) -> ClassificationResult:
        if self.force_mock:
            log.warning("FORCE_AI_FALLBACK is set, using mock classification")
            return mock_classify(image_bytes)
        if not self.deadline:
            return await classify_with_fallback(image_bytes, self.classifiers)
        try:
            return await asyncio.wait_for(classify_with_fallback(image_bytes, self.classifiers), self.deadline)
        except asyncio.TimeoutError:
            log.warning("classification exceeded %.1fs, using mock classification", self.deadline)
            return mock_classify(image_bytes)

    def status(self) -> Dict[str, ProviderStatus]:
        return {
            c.name: ProviderStatus(configured=c.is_configured(), available=c.is_configured() and not self.force_mock)
            for c in self.classifiers
        }

    async def test_all(self, image_bytes: bytes) -> ProviderReport:
        """Ask every configured provider, without short-circuiting."""
        report = ProviderReport()
        for classifier in self.classifiers:
            try:
                if not classifier.is_configured():
                    continue
                report.results[classifier.name] = await classifier.classify(image_bytes)
            except Exception as e:
                report.errors.append(f"{classifier.name}: {e}")
        return report

    async def aclose(self) -> None:
        for classifier in self.classifiers:
            await classifier.aclose()
