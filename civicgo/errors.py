from __future__ import annotations
from enum import Enum
from typing import Optional


class CivicGoError(Exception):
    pass


class ProviderError(CivicGoError):
    """An image classification provider could not produce a usable answer."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


class StoreErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    INVALID_CID = "invalid_cid"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"


class StoreError(CivicGoError):
    def __init__(self, message: str, kind: StoreErrorKind = StoreErrorKind.REJECTED):
        super().__init__(message)
        self.kind = kind
