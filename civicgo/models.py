from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .utils import now_iso, truncate

TITLE_MAX = 50
DESCRIPTION_MAX = 200


class Category(str, Enum):
    WATER = "Water"
    ELECTRICITY = "Electricity"
    ROADS = "Roads"
    SANITATION = "Sanitation"
    INFRASTRUCTURE = "Infrastructure"
    OTHERS = "Others"

    @classmethod
    def coerce(cls, value: Any) -> "Category":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.OTHERS


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"

    @classmethod
    def coerce(cls, value: Any) -> "Priority":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.MEDIUM


class Label(BaseModel):
    name: str
    score: float


class ClassificationResult(BaseModel):
    title: str
    category: Category = Category.OTHERS
    description: str = ""
    confidence: float = 0.0
    priority: Priority = Priority.MEDIUM
    is_mock: bool = False
    provider: str = "unknown"

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, v):
        return Category.coerce(v)

    @field_validator("priority", mode="before")
    @classmethod
    def _known_priority(cls, v):
        return Priority.coerce(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        try:
            v = float(v)
        except (TypeError, ValueError):
            return 0.0
        return min(max(v, 0.0), 1.0)

    @field_validator("title")
    @classmethod
    def _short_title(cls, v: str) -> str:
        return truncate(v, TITLE_MAX)

    @field_validator("description")
    @classmethod
    def _short_description(cls, v: str) -> str:
        return truncate(v, DESCRIPTION_MAX)


class ProofRecord(BaseModel):
    report_id: str
    timestamp: str
    city: str


class ProofCreationResult(BaseModel):
    success: bool
    cid: Optional[str] = None
    proof: Optional[ProofRecord] = None
    error: Optional[str] = None
    timestamp: str


class ProofVerificationResult(BaseModel):
    success: bool
    is_valid: bool
    cid: str
    proof: Optional[Any] = None
    error: Optional[str] = None
    issues: List[str] = Field(default_factory=list)
    verified_at: str = Field(default_factory=now_iso)


class ProofMetadata(BaseModel):
    cid: str
    report_id: str
    proof_timestamp: str
    city: str
    created_at: str
    verification_status: Literal["pending", "verified", "failed"] = "pending"
    verified_at: Optional[str] = None


class StoreResult(BaseModel):
    success: bool
    cid: Optional[str] = None
    data: Optional[Any] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


# --- request bodies ---

class ProofRequest(BaseModel):
    report_id: str
    city: str
    timestamp: Optional[str] = None


class VerifyItem(BaseModel):
    cid: str
    report_id: Optional[str] = None


class BatchVerifyRequest(BaseModel):
    items: List[VerifyItem] = Field(default_factory=list)


class ImagePayload(BaseModel):
    image: str = Field(..., description="Base64 image or data URL")


class ProviderStatus(BaseModel):
    configured: bool
    available: bool


class ProviderReport(BaseModel):
    results: Dict[str, ClassificationResult] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
