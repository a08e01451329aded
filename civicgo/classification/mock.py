from __future__ import annotations
from typing import Dict, List

from ..models import ClassificationResult

# Every 100th byte feeds the hash; stored fixtures depend on the stride.
MOCK_SAMPLE_STRIDE = 100

MOCK_RESPONSES: List[Dict] = [
    {
        "title": "Streetlight not working",
        "category": "Electricity",
        "description": "A streetlight appears to be malfunctioning or not illuminating properly.",
        "confidence": 0.92,
        "priority": "Medium",
    },
    {
        "title": "Water leakage",
        "category": "Water",
        "description": "There is a water pipe leakage that needs immediate attention.",
        "confidence": 0.89,
        "priority": "High",
    },
    {
        "title": "Damaged road/pothole",
        "category": "Roads",
        "description": "The road surface is damaged with a significant pothole that poses risk to vehicles.",
        "confidence": 0.95,
        "priority": "High",
    },
    {
        "title": "Fallen tree branch",
        "category": "Infrastructure",
        "description": "A large tree branch has fallen and is blocking the pathway.",
        "confidence": 0.87,
        "priority": "Urgent",
    },
    {
        "title": "Overflowing garbage bin",
        "category": "Sanitation",
        "description": "Garbage bin is overflowing and needs to be collected.",
        "confidence": 0.91,
        "priority": "Low",
    },
    {
        "title": "Issue Detected",
        "category": "Others",
        "description": "An issue was detected but could not be classified automatically. Please provide more details.",
        "confidence": 0.3,
        "priority": "Medium",
    },
]


def mock_hash(image_bytes: bytes) -> int:
    return sum(image_bytes[::MOCK_SAMPLE_STRIDE])


def mock_classify(image_bytes: bytes) -> ClassificationResult:
    """Placeholder result picked deterministically from the image bytes."""
    entry = MOCK_RESPONSES[mock_hash(image_bytes) % len(MOCK_RESPONSES)]
    return ClassificationResult(**entry, is_mock=True, provider="mock")
