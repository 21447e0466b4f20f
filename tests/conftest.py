import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

import pytest

from simplecite.config import Settings
from simplecite.errors import NetworkFailure


class FakeFetcher:
    """Async fetcher that answers from a routing function and records calls."""

    def __init__(self, route: Callable[[str], Optional[str]]):
        self.route = route
        self.calls: List[str] = []
        self.headers: List[Optional[Dict[str, str]]] = []

    async def __call__(self, url: str, _timeout: float, headers: Optional[Dict[str, str]] = None) -> str:
        self.calls.append(url)
        self.headers.append(headers)
        body = self.route(url)
        if body is None:
            raise NetworkFailure(url, "HTTP 403", status_code=403)
        return body


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        proxy_url="https://proxy.test/",
        reader_mirrors=[
            "https://reader.test/{url}",
            "https://reader.test/https://proxy.test/?url={encoded}",
            "https://reader-b.test/{url}",
        ],
        text_endpoint="https://llm.test",
        text_model="fast",
        chunk_size=50,
        database_path=tmp_path / "citations.db",
    )


@pytest.fixture()
def make_fetcher() -> Callable[[Callable[[str], Optional[str]]], FakeFetcher]:
    return FakeFetcher
