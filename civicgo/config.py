from __future__ import annotations
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    # unfilled .env templates ship placeholders like "your_clarifai_api_key_here"
    if not value or (value.lower().startswith("your_") and value.lower().endswith("_here")):
        return default
    return value


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str) -> bool:
    return (_env(name) or "").lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    data_dir: Path = Path("./seeds")
    db_path: Optional[Path] = None
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    clarifai_api_key: Optional[str] = None
    clarifai_model_id: str = "general-image-recognition"
    clarifai_model_version: str = "aa7f35c01e0642fda5cf400f543e7c7f"
    huggingface_api_key: Optional[str] = None
    huggingface_model: str = "microsoft/resnet-50"
    perplexity_api_key: Optional[str] = None
    perplexity_model: str = "sonar-pro"
    local_model_path: Optional[Path] = None
    local_model_size: int = 32
    classify_timeout: float = 12.0
    classify_deadline: Optional[float] = None
    force_ai_fallback: bool = False

    ipfs_api_url: Optional[str] = None
    ipfs_timeout: float = 15.0

    @property
    def proof_db_path(self) -> Path:
        return self.db_path or (self.data_dir / "proofs.db")

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        local_model = _env("LOCAL_MODEL_PATH")
        db_path = _env("DB_PATH")
        log_dir = _env("LOG_DIR")
        return cls(
            data_dir=Path(_env("DATA_DIR", "./seeds")),
            db_path=Path(db_path) if db_path else None,
            log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
            log_dir=Path(log_dir) if log_dir else None,
            clarifai_api_key=_env("CLARIFAI_API_KEY"),
            clarifai_model_id=_env("CLARIFAI_MODEL_ID", "general-image-recognition"),
            clarifai_model_version=_env("CLARIFAI_MODEL_VERSION", "aa7f35c01e0642fda5cf400f543e7c7f"),
            huggingface_api_key=_env("HUGGINGFACE_API_KEY"),
            huggingface_model=_env("HUGGINGFACE_MODEL", "microsoft/resnet-50"),
            perplexity_api_key=_env("PERPLEXITY_API_KEY"),
            perplexity_model=_env("PERPLEXITY_MODEL", "sonar-pro"),
            local_model_path=Path(local_model) if local_model else None,
            local_model_size=int(_env_float("LOCAL_MODEL_SIZE", 32)),
            classify_timeout=_env_float("CLASSIFY_TIMEOUT", 12.0),
            classify_deadline=_env_float("CLASSIFY_DEADLINE", None),
            force_ai_fallback=_env_bool("FORCE_AI_FALLBACK"),
            ipfs_api_url=_env("IPFS_API_URL"),
            ipfs_timeout=_env_float("IPFS_TIMEOUT", 15.0),
        )
