"""Tests for the paginated, rate-limit aware Up API client."""

import asyncio

import httpx
import pytest

from tests.fakes import BASE_URL, PagedUpstream, SleepRecorder, mock_up_client, raw_transaction
from upbank_proxy.clients.up_client import UpBankClient
from upbank_proxy.config import Settings
from upbank_proxy.errors import RateLimitExceeded, UpstreamError
from upbank_proxy.retry import RateLimitRetryPolicy


def _three_pages() -> list[list[dict]]:
    return [
        [raw_transaction("tx-1"), raw_transaction("tx-2")],
        [raw_transaction("tx-3"), raw_transaction("tx-4")],
        [raw_transaction("tx-5")],
    ]


def test_fetch_all_transactions_concatenates_pages_in_order() -> None:
    upstream = PagedUpstream(_three_pages())
    client = mock_up_client(upstream)

    items = asyncio.run(client.fetch_all_transactions())

    assert [t["id"] for t in items] == ["tx-1", "tx-2", "tx-3", "tx-4", "tx-5"]
    assert len(upstream.transaction_requests) == 3


def test_first_request_asks_for_page_size_and_sends_bearer_token() -> None:
    upstream = PagedUpstream([[raw_transaction("tx-1")]])
    client = mock_up_client(upstream)

    asyncio.run(client.fetch_all_transactions())

    first = upstream.requests[0]
    assert str(first.url).startswith(f"{BASE_URL}/transactions")
    assert first.url.params.get("page[size]") == "100"
    assert first.headers["Authorization"] == "Bearer test-token"


def test_every_page_request_is_authenticated() -> None:
    upstream = PagedUpstream(_three_pages())
    client = mock_up_client(upstream)

    asyncio.run(client.fetch_all_transactions())

    assert all(r.headers["Authorization"] == "Bearer test-token" for r in upstream.requests)


def test_waits_between_pages_but_not_before_the_first() -> None:
    sleep = SleepRecorder()
    client = mock_up_client(PagedUpstream(_three_pages()), sleep=sleep, page_delay_seconds=0.5)

    asyncio.run(client.fetch_all_transactions())

    assert sleep.calls == [0.5, 0.5]


def test_rate_limited_page_is_retried_and_kept_once() -> None:
    upstream = PagedUpstream(_three_pages(), rate_limited={1: 1})
    sleep = SleepRecorder()
    client = mock_up_client(upstream, sleep=sleep)

    items = asyncio.run(client.fetch_all_transactions())

    assert [t["id"] for t in items] == ["tx-1", "tx-2", "tx-3", "tx-4", "tx-5"]
    assert len(upstream.transaction_requests) == 4
    assert 30.0 in sleep.calls


def test_retry_after_header_overrides_cooldown() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(429, headers={"Retry-After": "7"})
        return httpx.Response(200, json={"data": [raw_transaction("tx-1")], "links": {"next": None}})

    sleep = SleepRecorder()
    client = mock_up_client(handler, sleep=sleep)

    items = asyncio.run(client.fetch_all_transactions())

    assert len(items) == 1
    assert sleep.calls == [7.0]


def test_rate_limit_gives_up_after_max_attempts() -> None:
    upstream = PagedUpstream([[raw_transaction("tx-1")]], rate_limited={0: 100})
    sleep = SleepRecorder()
    client = mock_up_client(
        upstream,
        sleep=sleep,
        retry_policy=RateLimitRetryPolicy(cooldown_seconds=1.0, max_attempts=3),
    )

    with pytest.raises(RateLimitExceeded) as exc_info:
        asyncio.run(client.fetch_all_transactions())

    assert exc_info.value.attempts == 3
    assert exc_info.value.status_code == 429
    assert len(upstream.requests) == 3
    assert sleep.calls == [1.0, 1.0]


def test_unbounded_policy_keeps_retrying() -> None:
    upstream = PagedUpstream([[raw_transaction("tx-1")]], rate_limited={0: 25})
    client = mock_up_client(
        upstream,
        retry_policy=RateLimitRetryPolicy(cooldown_seconds=0.0, max_attempts=None),
    )

    items = asyncio.run(client.fetch_all_transactions())

    assert [t["id"] for t in items] == ["tx-1"]
    assert len(upstream.requests) == 26


def test_server_error_raises_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"errors": [{"status": "500"}]})

    client = mock_up_client(handler)

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.fetch_all_transactions())

    assert exc_info.value.status_code == 500
    assert not isinstance(exc_info.value, RateLimitExceeded)


def test_unauthorized_is_not_retried() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(401, json={"errors": [{"status": "401", "title": "Not Authorized"}]})

    client = mock_up_client(handler)

    with pytest.raises(UpstreamError):
        asyncio.run(client.fetch_all_transactions())

    assert calls["n"] == 1


def test_transport_error_raises_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = mock_up_client(handler)

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.fetch_all_transactions())

    assert exc_info.value.status_code is None


def test_invalid_json_raises_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>maintenance</html>")

    client = mock_up_client(handler)

    with pytest.raises(UpstreamError):
        asyncio.run(client.fetch_all_transactions())


def test_failure_on_a_later_page_returns_nothing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("page[after]"):
            return httpx.Response(503)
        return httpx.Response(
            200,
            json={"data": [raw_transaction("tx-1")], "links": {"next": f"{BASE_URL}/transactions?page[after]=1"}},
        )

    client = mock_up_client(handler)

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.fetch_all_transactions())

    assert exc_info.value.status_code == 503


def test_fetch_accounts_follows_pagination() -> None:
    accounts = [{"type": "accounts", "id": "acc-1", "attributes": {"displayName": "Spending"}}]
    upstream = PagedUpstream([[]], accounts=accounts)
    client = mock_up_client(upstream)

    result = asyncio.run(client.fetch_accounts())

    assert result == accounts
    assert upstream.requests[0].url.path == "/api/v1/accounts"


def test_from_settings_copies_retry_configuration() -> None:
    settings = Settings(
        up_token="tok",
        up_api_base_url="https://example.test/api/v1/",
        up_page_size=20,
        up_rate_limit_cooldown_seconds=5.0,
        up_rate_limit_max_attempts=None,
    )

    client = UpBankClient.from_settings(settings)
    try:
        assert client.base_url == "https://example.test/api/v1"
        assert client.page_size == 20
        assert client.retry_policy == RateLimitRetryPolicy(cooldown_seconds=5.0, max_attempts=None)
    finally:
        asyncio.run(client.aclose())


@pytest.mark.parametrize(
    "body",
    [
        [{"id": "tx-1"}],
        {"data": {"id": "tx-1"}},
        "just a string",
    ],
)
def test_unexpected_document_shape_raises_upstream_error(body) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    client = mock_up_client(handler)

    with pytest.raises(UpstreamError):
        asyncio.run(client.fetch_all_transactions())


def test_non_object_links_end_pagination() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": [raw_transaction("tx-1")], "links": "nope"})

    items = asyncio.run(mock_up_client(handler).fetch_all_transactions())

    assert [t["id"] for t in items] == ["tx-1"]


@pytest.mark.parametrize("header", ["inf", "Infinity", "nan", "Wed, 21 Oct 2015 07:28:00 GMT"])
def test_unusable_retry_after_falls_back_to_cooldown(header) -> None:
    policy = RateLimitRetryPolicy(cooldown_seconds=4.0, max_attempts=3)

    assert policy.delay_for(httpx.Response(429, headers={"Retry-After": header})) == 4.0


def test_infinite_retry_after_does_not_stall_the_page() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(429, headers={"Retry-After": "inf"})
        return httpx.Response(200, json={"data": [raw_transaction("tx-1")], "links": {"next": None}})

    sleep = SleepRecorder()
    items = asyncio.run(mock_up_client(handler, sleep=sleep).fetch_all_transactions())

    assert len(items) == 1
    assert sleep.calls == [30.0]
