"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import hashlib
import os
import sys
from collections.abc import Callable, Generator, Sequence
from pathlib import Path

import numpy as np
import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local vaultgraph package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of vaultgraph modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("vaultgraph"):
        del sys.modules[module_name]


@pytest.fixture(autouse=True)
def isolated_global_config(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Point the global config at an empty location and drop VAULTGRAPH__ env vars."""
    from vaultgraph.config import loader

    path = tmp_path_factory.mktemp("global-config") / "config.yaml"
    monkeypatch.setattr(loader, "GLOBAL_CONFIG_PATH", path)
    for key in list(os.environ):
        if key.upper().startswith("VAULTGRAPH__"):
            monkeypatch.delenv(key)
    yield path


class FakeEmbedder:
    """Deterministic in-process stand-in for the embedding service.

    Texts found in ``table`` get that vector; any other text gets a stable
    pseudo-random vector derived from its SHA-256 digest.
    """

    def __init__(self, dim: int = 4, table: dict[str, list[float]] | None = None) -> None:
        self.model = "fake-embed"
        self.dim = dim
        self.table = dict(table or {})
        self.calls: list[list[str]] = []
        self.fail_on: str | None = None

    def vector_for(self, text: str) -> np.ndarray:
        if text in self.table:
            return np.asarray(self.table[text], dtype=np.float32)
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return np.frombuffer(digest[: self.dim], dtype=np.uint8).astype(np.float32) / 255.0 + 0.01

    def embed(self, texts: Sequence[str]) -> list[np.ndarray]:
        from vaultgraph.core.errors import EmbeddingError

        texts = list(texts)
        self.calls.append(texts)
        if self.fail_on is not None and any(self.fail_on in t for t in texts):
            raise EmbeddingError.request_failed("fake://embed", "HTTP 500", status=500)
        return [self.vector_for(t) for t in texts]


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def make_embedder() -> Callable[..., FakeEmbedder]:
    """Factory for embedders with a custom dimension or lookup table."""
    return FakeEmbedder


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def write_note(vault: Path) -> Callable[[str, str], Path]:
    """Write a note under the vault, creating parent directories."""

    def _write(rel_path: str, content: str) -> Path:
        path = vault / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
