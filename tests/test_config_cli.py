import json
from pathlib import Path

import pytest

from civicgo.cli import main
from civicgo.config import Settings

ENV_KEYS = ["CLARIFAI_API_KEY", "HUGGINGFACE_API_KEY", "PERPLEXITY_API_KEY", "LOCAL_MODEL_PATH",
            "IPFS_API_URL", "FORCE_AI_FALLBACK", "CLASSIFY_TIMEOUT", "CLASSIFY_DEADLINE", "DB_PATH", "LOG_DIR"]


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "seeds"))
    return monkeypatch


def test_settings_from_env(clean_env, tmp_path):
    clean_env.setenv("CLARIFAI_API_KEY", "abc")
    clean_env.setenv("HUGGINGFACE_API_KEY", "your_huggingface_api_key_here")
    clean_env.setenv("CLASSIFY_TIMEOUT", "3.5")
    clean_env.setenv("FORCE_AI_FALLBACK", "true")
    s = Settings.from_env(dotenv=False)
    assert s.clarifai_api_key == "abc"
    assert s.huggingface_api_key is None
    assert s.classify_timeout == 3.5
    assert s.force_ai_fallback is True
    assert s.proof_db_path == Path(tmp_path / "seeds" / "proofs.db")


def test_bad_numbers_fall_back_to_defaults(clean_env):
    clean_env.setenv("CLASSIFY_TIMEOUT", "soon")
    assert Settings.from_env(dotenv=False).classify_timeout == 12.0


def test_cli_proof_create_and_verify(clean_env, capsys):
    assert main(["proof", "create", "CG-1", "Springfield", "--timestamp", "2024-12-01T10:00:00Z"]) == 0
    created = json.loads(capsys.readouterr().out)
    assert created["success"]

    assert main(["proof", "verify", created["cid"], "--report-id", "CG-1"]) == 0
    verified = json.loads(capsys.readouterr().out)
    assert verified["is_valid"]

    assert main(["proof", "verify", created["cid"], "--report-id", "CG-2"]) == 1
    capsys.readouterr()


def test_cli_selftest(clean_env, capsys):
    assert main(["proof", "selftest"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["self_test"] is True


def test_cli_classify_without_providers(clean_env, capsys, tmp_path, png_bytes):
    image = tmp_path / "photo.png"
    image.write_bytes(png_bytes)
    assert main(["classify", str(image)]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["is_mock"] is True

    assert main(["providers"]) == 0
    status = json.loads(capsys.readouterr().out)
    assert status["clarifai"] == {"configured": False, "available": False}
