import hashlib
import logging
import os
import pathlib
import sys
from typing import List

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import bitauth`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from bitauth.config import ConfigManager  # noqa: E402
from bitauth.observability import ROOT_LOGGER_NAME  # noqa: E402
from bitauth.primitives import load_primitives  # noqa: E402
from bitauth.storage import DataDirectory, TemplateRegistry  # noqa: E402


class CountingRandom:
    """Deterministic randomness source; records the size of every request."""

    def __init__(self, seed: bytes = b"bitauth-tests"):
        self.seed = seed
        self.requests: List[int] = []

    def __call__(self, n: int) -> bytes:
        call = len(self.requests).to_bytes(4, "big")
        self.requests.append(n)
        out = b""
        block = 0
        while len(out) < n:
            out += hashlib.sha256(self.seed + call + block.to_bytes(4, "big")).digest()
            block += 1
        return out[:n]


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    """Fresh configuration singleton and detached log handlers for every test."""
    for name in list(os.environ):
        if name.startswith("BITAUTH_"):
            monkeypatch.delenv(name)
    ConfigManager.reset_instance()
    yield
    ConfigManager.reset_instance()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(logging.NullHandler())
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture(scope="session")
def primitives():
    return load_primitives()


@pytest.fixture
def random_source():
    return CountingRandom()


@pytest.fixture
def data_dir(tmp_path):
    return DataDirectory(tmp_path / "bitauth-data").ensure()


@pytest.fixture
def registry(data_dir):
    return TemplateRegistry.load(data_dir)


@pytest.fixture
def random_factory():
    return CountingRandom
