import pytest
from typer.testing import CliRunner
from typing import Any, Callable, Dict, List, Optional, Tuple

from restfetch.domain.interfaces.transport import Transport
from restfetch.domain.models.outcome import FetchOutcome, OutcomeKind
from restfetch.infrastructure.config.settings import ClientSettings, clear_test_config


class FakeTransport(Transport):
    """In-memory transport that answers from a handler and records calls.

    The handler receives (path, params) and returns a FetchOutcome.
    """

    def __init__(self, handler: Callable[[str, Dict[str, Any]], FetchOutcome], fingerprint: str = ""):
        self.handler = handler
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._fingerprint = fingerprint
        self.closed = False

    @property
    def credential_fingerprint(self) -> str:
        return self._fingerprint

    async def send(self, resource_path: str, params: Optional[Dict[str, Any]] = None) -> FetchOutcome:
        params = dict(params or {})
        self.calls.append((resource_path, params))
        return self.handler(resource_path, params)

    async def aclose(self) -> None:
        self.closed = True

    def pages_requested(self) -> List[int]:
        return [params.get("page") for _, params in self.calls]


def ok(payload: Any, headers: Optional[Dict[str, str]] = None) -> FetchOutcome:
    return FetchOutcome(OutcomeKind.OK, 200, payload, headers or {})


def paged_collection(items: List[Any], out_of_range: str = "empty") -> Callable[[str, Dict[str, Any]], FetchOutcome]:
    """Handler serving `items` page by page, like a GitHub list endpoint.

    Args:
        out_of_range: 'empty' answers [] past the end, '404' answers Not Found.
    """
    def handler(path: str, params: Dict[str, Any]) -> FetchOutcome:
        page = int(params["page"])
        per_page = int(params["per_page"])
        start = (page - 1) * per_page
        chunk = items[start:start + per_page]
        if not chunk and page > 1 and out_of_range == "404":
            return FetchOutcome(OutcomeKind.NOT_FOUND, 404, error="Not Found")
        return ok(chunk)
    return handler


class FakeSleep:
    """Awaitable stand-in for asyncio.sleep that records durations."""

    def __init__(self):
        self.durations: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.durations.append(seconds)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(base_url="https://api.example.test", backoff_seconds=0.5)


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch, tmp_path):
    """Keeps tests independent of the developer's environment and config files."""
    for var in ("RESTFETCH_API_TOKEN", "GITHUB_TOKEN", "RESTFETCH_API_BASE_URL", "RESTFETCH_LOGGING_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_test_config()
    yield
    clear_test_config()
