"""
Shared pytest fixtures for the jit test suite.

Provides fixtures for:
- Temporary storage directories
- A copy of the sample assets per test
- Recording responders and counting engines
"""

import asyncio
import os
import shutil
import tempfile
from collections.abc import Callable
from collections.abc import Generator
from pathlib import Path

import pytest

from jit_library.engine import LoaderEngine
from jit_library.models import EngineRequest
from jit_library.models import EngineResponse
from jit_library.session import BuildSession

DATA_DIR = Path(__file__).parent / "data"

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"


@pytest.fixture
def temp_storage_dir() -> Generator[Path, None, None]:
    """Create temporary storage directory for tests.

    Automatically cleaned up after test completes.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_storage_env(temp_storage_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point JIT_HOME at a temp directory and clear directory overrides.

    Returns:
        Path to temporary storage directory
    """
    monkeypatch.setenv("JIT_HOME", str(temp_storage_dir))
    monkeypatch.delenv("JIT_CONFIG_DIR", raising=False)
    monkeypatch.delenv("JIT_CACHE_DIR", raising=False)
    for key in list(os.environ):
        if key.startswith("JIT_") and key != "JIT_HOME":
            monkeypatch.delenv(key, raising=False)
    return temp_storage_dir


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    """Copy of tests/data plus a binary file, safe to modify.

    Example:
        >>> def test_assets(assets_dir):
        ...     assert (assets_dir / "widgets.vue").exists()
    """
    assets = tmp_path / "assets"
    shutil.copytree(DATA_DIR, assets)
    (assets / "logo.png").write_bytes(PNG_BYTES)
    return assets


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Empty artifact cache directory."""
    cache = tmp_path / "cache"
    cache.mkdir()
    return cache


@pytest.fixture
def set_mtime() -> Callable[[Path, int], None]:
    """Set both atime and mtime of a file, in nanoseconds."""

    def _set(path: Path, mtime_ns: int) -> None:
        os.utime(path, ns=(mtime_ns, mtime_ns))

    return _set


class RecordingResponder:
    """Responder that records which outcome each session delivered."""

    def __init__(self) -> None:
        self.started = False
        self.calls: list[str] = []
        self.body: str | None = None
        self.errors: list[Exception] = []

    def _record(self, name: str) -> None:
        self.started = True
        self.calls.append(name)

    async def send_cached(self, session: BuildSession) -> None:
        self._record("cached")
        self.body = session.dest_path.read_text()

    async def send_built(self, session: BuildSession, text: str) -> None:
        self._record("built")
        self.body = text

    async def send_raw(self, session: BuildSession) -> None:
        self._record("raw")

    async def send_forbidden(self, session: BuildSession) -> None:
        self._record("forbidden")

    async def send_not_found(self, session: BuildSession, error: Exception) -> None:
        self._record("not_found")
        self.errors.append(error)

    async def send_error(self, session: BuildSession, error: Exception) -> None:
        self._record("error")
        self.errors.append(error)


class CountingEngine(LoaderEngine):
    """LoaderEngine that counts builds and holds each one open briefly."""

    def __init__(self, delay: float = 0.05) -> None:
        self.delay = delay
        self.builds = 0

    async def build(self, request: EngineRequest) -> EngineResponse:
        self.builds += 1
        await asyncio.sleep(self.delay)
        return await super().build(request)


@pytest.fixture
def responder() -> RecordingResponder:
    """Fresh recording responder."""
    return RecordingResponder()


@pytest.fixture
def responder_factory() -> Callable[[], RecordingResponder]:
    """Factory for one recording responder per concurrent session."""
    return RecordingResponder


@pytest.fixture
def counting_engine() -> CountingEngine:
    """Engine counting how many compiles actually ran."""
    return CountingEngine()
