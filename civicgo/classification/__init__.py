from .base import ImageClassifier
from .hybrid import DEFAULT_PROVIDER_ORDER, HybridClassifier, build_classifiers, classify_with_fallback
from .mock import mock_classify

__all__ = [
    "DEFAULT_PROVIDER_ORDER",
    "HybridClassifier",
    "ImageClassifier",
    "build_classifiers",
    "classify_with_fallback",
    "mock_classify",
]
