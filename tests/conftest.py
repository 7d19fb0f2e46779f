import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure local source package (src/retrohttpx) is importable before tests collect
_PROJECT_ROOT: Path = Path(__file__).resolve().parents[1]
_SRC_PATH: Path = _PROJECT_ROOT / "src"
if _SRC_PATH.exists():
    sys.path.insert(0, str(_SRC_PATH))

from retrohttpx import ClientConfig, RetroHttpx  # noqa: E402


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clean environment variables before each test."""
    monkeypatch.delenv("RETROHTTPX_BASE_URL", raising=False)
    monkeypatch.delenv("RETROHTTPX_TIMEOUT", raising=False)
    monkeypatch.delenv("RETROHTTPX_MAX_RETRIES", raising=False)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def base_url() -> str:
    return "https://api.example.com/3/"


@pytest.fixture
def api_key() -> str:
    return "secret-api-key"


@pytest.fixture
def config(base_url: str, api_key: str) -> ClientConfig:
    return ClientConfig(base_url=base_url, headers={"Authorization": f"Bearer {api_key}"})


@pytest.fixture
def client(config: ClientConfig) -> Generator[RetroHttpx, None, None]:
    with RetroHttpx(config) as client:
        yield client
