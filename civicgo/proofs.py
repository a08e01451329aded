# proofs.py
"""Proof-of-report records.

A proof is the minimal JSON document ``{report_id, timestamp, city}`` stored in
a content-addressed store. Creating one is best effort and never breaks report
submission; verifying one is where the content is checked.
"""
from __future__ import annotations
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from .db import ProofRegistry
from .errors import StoreErrorKind
from .models import (
    ProofCreationResult,
    ProofMetadata,
    ProofRecord,
    ProofVerificationResult,
    StoreResult,
    VerifyItem,
)
from .storage import ContentStore
from .utils import PROOF_FIELDS, now_iso, parse_iso

log = logging.getLogger("civicgo.proofs")

RETRIEVAL_MESSAGES: Dict[str, str] = {
    StoreErrorKind.NETWORK.value: (
        "Unable to connect to IPFS network. This may be due to network restrictions. "
        "The proof exists but cannot be verified at this time."
    ),
    StoreErrorKind.TIMEOUT.value: "IPFS network request timed out. Please try again later.",
    StoreErrorKind.INVALID_CID.value: "The proof identifier is invalid or corrupted.",
    StoreErrorKind.NOT_FOUND.value: "No proof was found for this identifier.",
}
DEFAULT_RETRIEVAL_MESSAGE = "Failed to retrieve proof from IPFS network."


def retrieval_message(result: StoreResult) -> str:
    return RETRIEVAL_MESSAGES.get(result.error_kind or "", DEFAULT_RETRIEVAL_MESSAGE)


def validate_proof_structure(proof: Any, expected_report_id: Optional[str] = None) -> List[str]:
    """Return every problem found with ``proof``; an empty list means valid."""
    if not isinstance(proof, dict):
        return ["proof is not a JSON object"]
    issues = []
    for field in PROOF_FIELDS:
        value = proof.get(field)
        if not isinstance(value, str) or not value:
            issues.append(f"missing or invalid field: {field}")
    timestamp = proof.get("timestamp")
    if isinstance(timestamp, str) and timestamp and parse_iso(timestamp) is None:
        issues.append("timestamp is not ISO-8601")
    city = proof.get("city")
    if isinstance(city, str) and city and not city.strip():
        issues.append("city is empty")
    if expected_report_id and proof.get("report_id") != expected_report_id:
        issues.append(f"report_id mismatch: expected {expected_report_id!r}, got {proof.get('report_id')!r}")
    return issues


def create_proof_metadata(cid: str, proof: ProofRecord) -> ProofMetadata:
    return ProofMetadata(
        cid=cid,
        report_id=proof.report_id,
        proof_timestamp=proof.timestamp,
        city=proof.city,
        created_at=now_iso(),
    )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class ProofOfReportService:
    def __init__(self, store: ContentStore, registry: Optional[ProofRegistry] = None):
        self.store = store
        self.registry = registry

    async def create_proof(self, report_id: str, city: str, timestamp: Optional[str] = None) -> ProofCreationResult:
        start = time.monotonic()
        timestamp = timestamp or now_iso()
        log.info("creating proof for report %s in %s", report_id, city)
        try:
            proof = ProofRecord(report_id=report_id, timestamp=timestamp, city=city)
            stored = await self.store.put(proof.model_dump())
        except Exception as e:
            log.error("proof creation for report %s failed after %dms: %s", report_id, _elapsed_ms(start), e)
            return ProofCreationResult(success=False, error=f"Proof creation failed: {e}", timestamp=timestamp)

        if not stored.success:
            log.error("store rejected proof for report %s: %s", report_id, stored.error)
            return ProofCreationResult(success=False, error=stored.error or "Unknown store error", timestamp=timestamp)

        log.info("proof for report %s stored as %s in %dms", report_id, stored.cid, _elapsed_ms(start))
        self._record(stored.cid, proof)
        return ProofCreationResult(success=True, cid=stored.cid, proof=proof, timestamp=timestamp)

    def _record(self, cid: str, proof: ProofRecord) -> None:
        if self.registry is None:
            return
        try:
            self.registry.record(create_proof_metadata(cid, proof))
        except Exception:
            log.exception("could not record proof %s in the registry", cid)

    async def verify_proof(self, cid: str, expected_report_id: Optional[str] = None) -> ProofVerificationResult:
        start = time.monotonic()
        log.info("verifying proof %s", cid)
        try:
            fetched = await self.store.get(cid)
        except Exception as e:
            log.error("proof verification for %s failed after %dms: %s", cid, _elapsed_ms(start), e)
            return ProofVerificationResult(
                success=False, is_valid=False, cid=cid, error=f"Proof verification failed: {e}"
            )

        if not fetched.success:
            log.error("retrieval of %s failed: %s", cid, fetched.error)
            return ProofVerificationResult(success=False, is_valid=False, cid=cid, error=retrieval_message(fetched))

        issues = validate_proof_structure(fetched.data, expected_report_id)
        result = ProofVerificationResult(
            success=True, is_valid=not issues, cid=cid, proof=fetched.data, issues=issues
        )
        if issues:
            log.warning("proof %s failed validation in %dms: %s", cid, _elapsed_ms(start), "; ".join(issues))
        else:
            log.info("proof %s verified in %dms", cid, _elapsed_ms(start))
        self._mark(cid, result)
        return result

    def _mark(self, cid: str, result: ProofVerificationResult) -> None:
        if self.registry is None:
            return
        try:
            self.registry.mark(cid, "verified" if result.is_valid else "failed", result.verified_at)
        except Exception:
            log.exception("could not update registry status for %s", cid)

    async def batch_verify(self, items: Sequence[VerifyItem]) -> List[ProofVerificationResult]:
        log.info("batch verifying %d proofs", len(items))
        outcomes = await asyncio.gather(
            *(self.verify_proof(item.cid, item.report_id) for item in items), return_exceptions=True
        )
        results = []
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, BaseException):
                log.error("batch verification of %s raised: %r", item.cid, outcome)
                outcome = ProofVerificationResult(
                    success=False, is_valid=False, cid=item.cid, error=f"Batch verification failed: {outcome}"
                )
            results.append(outcome)
        return results

    async def service_status(self) -> Dict[str, Any]:
        try:
            ready = await self.store.is_ready()
            info = await self.store.node_info() if ready else None
        except Exception as e:
            return {"store_ready": False, "error": str(e)}
        return {"store_ready": ready, "node_info": info}

    async def self_test(self) -> bool:
        report_id = f"test_{int(time.time() * 1000)}"
        created = await self.create_proof(report_id, "Test City")
        if not created.success:
            log.error("self test failed during creation: %s", created.error)
            return False
        verified = await self.verify_proof(created.cid, report_id)
        if not (verified.success and verified.is_valid):
            log.error("self test failed during verification: %s", verified.error or verified.issues)
            return False
        log.info("proof service self test passed")
        return True
