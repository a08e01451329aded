from __future__ import annotations
import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import HTMLResponse

from .classification import HybridClassifier
from .config import Settings
from .db import ProofRegistry
from .ipfs_client import build_store
from .logging_config import setup_logging
from .models import (
    BatchVerifyRequest,
    ClassificationResult,
    ImagePayload,
    ProofCreationResult,
    ProofMetadata,
    ProofRequest,
    ProofVerificationResult,
    ProviderStatus,
)
from .proofs import ProofOfReportService
from .utils import decode_image_payload

log = logging.getLogger("civicgo.api")

app = FastAPI(title="CivicGo – report intake services")


@app.on_event("startup")
def _startup():
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_dir)
    settings.data_dir.mkdir(parents=True, exist_ok=True)

    registry = ProofRegistry(settings.proof_db_path)
    registry.init()
    app.state.settings = settings
    app.state.registry = registry
    app.state.proofs = ProofOfReportService(build_store(settings), registry)
    app.state.classifier = HybridClassifier.from_settings(settings)
    log.info("CivicGo services ready (data dir %s)", settings.data_dir)


@app.on_event("shutdown")
async def _shutdown():
    await app.state.classifier.aclose()
    await app.state.proofs.store.aclose()


@app.get("/", response_class=HTMLResponse)
def home():
    return '<h2>CivicGo</h2><p><a href="/docs">Swagger UI</a> | <a href="/redoc">ReDoc</a></p>'


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


# --- classification ---

@app.post("/classify", response_model=ClassificationResult)
async def classify_upload(request: Request, file: UploadFile = File(...)):
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty image upload")
    return await request.app.state.classifier.classify(data)


@app.post("/classify/base64", response_model=ClassificationResult)
async def classify_base64(request: Request, payload: ImagePayload):
    try:
        data = decode_image_payload(payload.image)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not data:
        raise HTTPException(status_code=400, detail="Empty image payload")
    return await request.app.state.classifier.classify(data)


@app.get("/classify/providers", response_model=Dict[str, ProviderStatus])
def classify_providers(request: Request):
    return request.app.state.classifier.status()


# --- proofs ---

@app.post("/proofs", response_model=ProofCreationResult)
async def create_proof(request: Request, body: ProofRequest):
    return await request.app.state.proofs.create_proof(body.report_id, body.city, body.timestamp)


@app.get("/proofs", response_model=List[ProofMetadata])
def list_proofs(request: Request, limit: int = Query(50, ge=1, le=500)):
    return request.app.state.registry.list(limit)


@app.get("/proofs/status")
async def proofs_status(request: Request):
    return await request.app.state.proofs.service_status()


@app.post("/proofs/verify", response_model=List[ProofVerificationResult])
async def verify_proofs(request: Request, body: BatchVerifyRequest):
    return await request.app.state.proofs.batch_verify(body.items)


@app.get("/proofs/{cid}", response_model=ProofVerificationResult)
async def verify_proof(request: Request, cid: str, report_id: Optional[str] = None):
    return await request.app.state.proofs.verify_proof(cid, report_id)


@app.get("/reports/{report_id}/proof", response_model=ProofMetadata)
def report_proof(request: Request, report_id: str):
    meta = request.app.state.registry.for_report(report_id)
    if not meta:
        raise HTTPException(status_code=404, detail="No proof available for this report")
    return meta
