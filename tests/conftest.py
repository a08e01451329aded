from io import BytesIO

import pytest
from PIL import Image

from civicgo.db import ProofRegistry
from civicgo.proofs import ProofOfReportService
from civicgo.storage import LocalContentStore


def make_png(color=(200, 30, 30), size=(8, 8)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def store(tmp_path):
    return LocalContentStore(str(tmp_path / "seeds"))


@pytest.fixture
def registry(tmp_path):
    reg = ProofRegistry(tmp_path / "proofs.db")
    reg.init()
    return reg


@pytest.fixture
def service(store, registry):
    return ProofOfReportService(store, registry)
