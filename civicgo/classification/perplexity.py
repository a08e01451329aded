from __future__ import annotations
import base64
import json
import re
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..errors import ProviderError
from ..models import Category, ClassificationResult, Priority
from .base import DEFAULT_TIMEOUT, HTTPImageClassifier
from .categories import GENERIC_TITLES, category_from_text, estimate_priority

PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"
JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

SYSTEM_PROMPT = """You are an expert assistant that analyzes photos of civic infrastructure.
Identify the main issue that needs municipal attention and answer with a JSON object:
1. "title": a concise title for the issue (max 50 characters)
2. "category": one of "Water", "Electricity", "Roads", "Sanitation", "Infrastructure", "Others"
3. "description": the issue and its likely impact (max 200 characters)
4. "confidence": a number between 0 and 1
5. "priority": one of "Low", "Medium", "High", "Urgent"

Priority: Urgent = immediate danger to life or major service disruption; High = significant
daily impact or likely to escalate; Medium = moderate inconvenience or maintenance;
Low = minor or cosmetic.

Respond ONLY with the JSON object."""

USER_PROMPT = "Please analyze this civic infrastructure image and identify any issues that require municipal attention."


def _sniff_mime(image_bytes: bytes) -> str:
    if image_bytes.startswith(b"\x89PNG"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes.startswith(b"GIF8"):
        return "image/gif"
    return "image/jpeg"


class PerplexityClassifier(HTTPImageClassifier):
    """Vision chat model asked for a structured verdict."""

    name = "perplexity"

    def __init__(self, api_key: Optional[str], model: str = "sonar-pro",
                 timeout: float = DEFAULT_TIMEOUT, client: Optional[httpx.AsyncClient] = None):
        super().__init__(api_key, timeout=timeout, client=client)
        self.model = model

    def _request(self, image_bytes: bytes) -> Dict[str, Any]:
        data_url = f"data:{_sniff_mime(image_bytes)};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": [
                    {"type": "text", "text": USER_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ]},
            ],
            "temperature": 0.3,
            "max_tokens": 1000,
        }

    async def classify(self, image_bytes: bytes) -> ClassificationResult:
        payload = await self._post_json(PERPLEXITY_API_URL, json=self._request(image_bytes), headers=self._headers())
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.name, "response has no message content") from e
        if not isinstance(content, str) or not content.strip():
            raise ProviderError(self.name, "empty message content")
        return self.parse_content(content)

    def parse_content(self, content: str) -> ClassificationResult:
        match = JSON_OBJECT_RE.search(content)
        if match:
            try:
                verdict = json.loads(match.group(0))
            except ValueError:
                verdict = None
            if isinstance(verdict, dict):
                try:
                    return ClassificationResult(
                        title=verdict.get("title") or "Civic Issue Detected",
                        category=verdict.get("category") or Category.OTHERS,
                        description=verdict.get("description") or "An issue was detected that requires municipal attention.",
                        confidence=verdict.get("confidence") if verdict.get("confidence") is not None else 0.8,
                        priority=verdict.get("priority") or Priority.MEDIUM,
                        provider=self.name,
                    )
                except ValidationError as e:
                    raise ProviderError(self.name, f"malformed verdict: {e.error_count()} invalid field(s)") from e
        return self.parse_text(content)

    def parse_text(self, content: str) -> ClassificationResult:
        """Keyword extraction for replies that ignored the JSON instruction."""
        category = category_from_text(content)
        return ClassificationResult(
            title=GENERIC_TITLES[category],
            category=category,
            description=content.strip(),
            confidence=0.7,
            priority=estimate_priority(category, content),
            provider=self.name,
        )
