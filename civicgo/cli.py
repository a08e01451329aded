from __future__ import annotations
import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from .classification import HybridClassifier
from .config import Settings
from .db import ProofRegistry
from .ipfs_client import build_store
from .logging_config import setup_logging
from .proofs import ProofOfReportService


def _dump(obj: Any) -> None:
    if hasattr(obj, "model_dump"):
        obj = obj.model_dump(mode="json")
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _proof_service(settings: Settings) -> ProofOfReportService:
    registry = ProofRegistry(settings.proof_db_path)
    registry.init()
    return ProofOfReportService(build_store(settings), registry)


async def _classify(settings: Settings, image: Path, test_all: bool) -> int:
    classifier = HybridClassifier.from_settings(settings)
    try:
        data = image.read_bytes()
        if test_all:
            _dump(await classifier.test_all(data))
        else:
            _dump(await classifier.classify(data))
    finally:
        await classifier.aclose()
    return 0


async def _proof(settings: Settings, args: argparse.Namespace) -> int:
    service = _proof_service(settings)
    try:
        if args.proof_cmd == "create":
            result = await service.create_proof(args.report_id, args.city, args.timestamp)
            _dump(result)
            return 0 if result.success else 1
        if args.proof_cmd == "verify":
            result = await service.verify_proof(args.cid, args.report_id)
            _dump(result)
            return 0 if result.is_valid else 1
        ok = await service.self_test()
        _dump({"self_test": ok, **(await service.service_status())})
        return 0 if ok else 1
    finally:
        await service.store.aclose()


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="civicgo", description="CivicGo report intake services")
    sub = ap.add_subparsers(dest="cmd", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("providers", help="Show which classification providers are configured")

    cls = sub.add_parser("classify", help="Classify an image file")
    cls.add_argument("image", type=Path)
    cls.add_argument("--all", action="store_true", help="Ask every configured provider")

    proof = sub.add_parser("proof", help="Create or verify proof-of-report records")
    psub = proof.add_subparsers(dest="proof_cmd", required=True)
    create = psub.add_parser("create")
    create.add_argument("report_id")
    create.add_argument("city")
    create.add_argument("--timestamp", default=None)
    verify = psub.add_parser("verify")
    verify.add_argument("cid")
    verify.add_argument("--report-id", default=None)
    psub.add_parser("selftest")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_dir)

    if args.cmd == "serve":
        import uvicorn
        uvicorn.run("civicgo.main:app", host=args.host, port=args.port)
        return 0
    if args.cmd == "providers":
        _dump({k: v.model_dump() for k, v in HybridClassifier.from_settings(settings).status().items()})
        return 0
    if args.cmd == "classify":
        return asyncio.run(_classify(settings, args.image, args.all))
    return asyncio.run(_proof(settings, args))


if __name__ == "__main__":
    sys.exit(main())
