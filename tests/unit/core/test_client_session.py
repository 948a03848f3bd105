import httpx
import pytest
import respx

from restfetch.core.services.client_session import ClientSession, create_session
from restfetch.domain.errors import FetchFailed, NotFound, Unauthorized
from restfetch.domain.models.outcome import FetchOutcome, OutcomeKind
from restfetch.infrastructure.config.settings import ClientSettings

from tests.conftest import FakeTransport, ok, paged_collection

BASE = "https://api.example.test"
PRIVATE_REPO = "/repos/Shruti-Rajpurohit/AI-blogger"
TOKEN = "ghp_test_token"


def github_like(request: httpx.Request) -> httpx.Response:
    """Hides the private repository from anonymous callers, like GitHub does."""
    quota = {"X-RateLimit-Limit": "60", "X-RateLimit-Remaining": "58", "X-RateLimit-Reset": "1900000000"}
    if request.headers.get("authorization") != f"Bearer {TOKEN}":
        return httpx.Response(404, json={"message": "Not Found"}, headers=quota)
    return httpx.Response(
        200,
        json={"full_name": "Shruti-Rajpurohit/AI-blogger", "private": True, "stargazers_count": 0, "language": "Python"},
        headers=quota,
    )


@pytest.mark.asyncio
@respx.mock
async def test_public_repository_without_credential():
    respx.get(f"{BASE}/repos/octocat/Hello-World").mock(
        return_value=httpx.Response(200, json={"full_name": "octocat/Hello-World", "private": False})
    )
    async with create_session(ClientSettings(base_url=BASE)) as session:
        repo = await session.get_item("/repos/octocat/Hello-World")
    assert repo["full_name"] == "octocat/Hello-World"


@pytest.mark.asyncio
@respx.mock
async def test_private_repository_is_not_found_anonymously():
    respx.get(f"{BASE}{PRIVATE_REPO}").mock(side_effect=github_like)
    async with create_session(ClientSettings(base_url=BASE)) as session:
        with pytest.raises(NotFound) as exc_info:
            await session.get_item(PRIVATE_REPO)
    assert exc_info.value.resource_path == PRIVATE_REPO
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
@respx.mock
async def test_private_repository_with_credential():
    respx.get(f"{BASE}{PRIVATE_REPO}").mock(side_effect=github_like)
    async with create_session(ClientSettings(base_url=BASE), credential=TOKEN) as session:
        repo = await session.get_item(PRIVATE_REPO)
        assert session.rate_limit.remaining == 58
    assert repo["stargazers_count"] == 0
    assert repo["language"] == "Python"


@pytest.mark.asyncio
@respx.mock
async def test_invalid_credential_is_unauthorized():
    respx.get(f"{BASE}/user").mock(return_value=httpx.Response(401, json={"message": "Bad credentials"}))
    async with create_session(ClientSettings(base_url=BASE), credential="expired") as session:
        with pytest.raises(Unauthorized) as exc_info:
            await session.get_item("/user")
    assert "expired" not in str(exc_info.value)
    assert "Bad credentials" in str(exc_info.value)


@pytest.mark.asyncio
async def test_get_item_is_cached(settings, fake_sleep):
    transport = FakeTransport(lambda path, params: ok({"id": 7}))
    session = ClientSession(transport, settings=settings, sleep=fake_sleep)

    first = await session.get_item("/repos/o/r")
    second = await session.get_item("/repos/o/r")
    third = await session.get_item("/repos/o/r", use_cache=False)

    assert first == second == third == {"id": 7}
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_cache_is_partitioned_by_credential(settings, fake_sleep):
    # Two sessions sharing one cache must not see each other's results.
    shared = ClientSession(FakeTransport(lambda p, q: ok({"who": "anon"})), settings=settings, sleep=fake_sleep)
    authed = ClientSession(
        FakeTransport(lambda p, q: ok({"who": "member"}), fingerprint="abc123"),
        cache=shared.cache, settings=settings, sleep=fake_sleep,
    )

    assert await shared.get_item("/repos/o/r") == {"who": "anon"}
    assert await authed.get_item("/repos/o/r") == {"who": "member"}


@pytest.mark.asyncio
async def test_sessions_are_independent(settings, fake_sleep):
    headers = {"x-ratelimit-limit": "60", "x-ratelimit-remaining": "10", "x-ratelimit-reset": "1900000000"}
    a = ClientSession(FakeTransport(lambda p, q: ok({}, headers)), settings=settings, sleep=fake_sleep)
    b = ClientSession(FakeTransport(lambda p, q: ok({})), settings=settings, sleep=fake_sleep)

    await a.get_item("/x")

    assert a.rate_limit.remaining == 10
    assert b.rate_limit is None
    assert a.cache is not b.cache


@pytest.mark.asyncio
async def test_failed_get_is_not_cached(settings, fake_sleep):
    outcomes = [FetchOutcome(OutcomeKind.TRANSIENT, 502), FetchOutcome(OutcomeKind.TRANSIENT, 502), ok({"id": 1})]
    transport = FakeTransport(lambda p, q: outcomes.pop(0))
    session = ClientSession(transport, settings=settings, sleep=fake_sleep)

    with pytest.raises(FetchFailed):
        await session.get_item("/flaky")
    assert await session.get_item("/flaky") == {"id": 1}
    assert fake_sleep.durations == [0.5]


@pytest.mark.asyncio
async def test_fetch_all_uses_configured_page_size(fake_sleep):
    settings = ClientSettings(per_page=3, max_pages=2)
    transport = FakeTransport(paged_collection(list(range(20))))
    session = ClientSession(transport, settings=settings, sleep=fake_sleep)

    items = await session.collect_all("/items")

    assert items == [0, 1, 2, 3, 4, 5]
    assert [params["per_page"] for _, params in transport.calls] == [3, 3]


@pytest.mark.asyncio
async def test_explicit_arguments_override_settings(settings, fake_sleep):
    transport = FakeTransport(paged_collection(list(range(20))))
    session = ClientSession(transport, settings=settings, sleep=fake_sleep)

    items = await session.collect_all("/items", page_size=5, max_pages=1)

    assert items == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_clear_cache_and_evict(settings, fake_sleep):
    transport = FakeTransport(lambda p, q: ok({"id": 1}))
    session = ClientSession(transport, settings=settings, sleep=fake_sleep)
    await session.get_item("/a")

    assert await session.evict_expired() == 0
    await session.clear_cache()
    await session.get_item("/a")
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_close_releases_transport(settings):
    transport = FakeTransport(lambda p, q: ok({}))
    async with ClientSession(transport, settings=settings):
        pass
    assert transport.closed
