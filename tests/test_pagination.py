"""Tests for cursor pagination in MetaClient.get_all."""

from __future__ import annotations

import httpx
import pytest

from conftest import TOKEN
from meta_ads_cli.core.api import DEFAULT_PAGE_SIZE, META_GRAPH_API_BASE, PageRequest
from meta_ads_cli.core.exceptions import GraphAPIError, HTTPStatusError, PaginationError

CAMPAIGNS_URL = f"{META_GRAPH_API_BASE}/act_1/campaigns"


def paged(pages: dict[str, dict], failures: dict[str, httpx.Response] | None = None):
    """Serve ``pages`` keyed by the ``after`` cursor ("" for the first page)."""
    failures = failures or {}

    def handler(request: httpx.Request) -> httpx.Response:
        cursor = request.url.params.get("after", "")
        if cursor in failures:
            return failures[cursor]
        return httpx.Response(200, json=pages[cursor])

    return handler


def page(ids: list[str], next_cursor: str | None = None) -> dict:
    body: dict = {"data": [{"id": i} for i in ids]}
    if next_cursor:
        body["paging"] = {
            "cursors": {"after": next_cursor},
            "next": f"{CAMPAIGNS_URL}?fields=id&limit={DEFAULT_PAGE_SIZE}&after={next_cursor}",
        }
    return body


THREE_PAGES = {
    "": page(["1", "2"], "c1"),
    "c1": page(["3", "4"], "c2"),
    "c2": page(["5"]),
}


def test_page_request_variants() -> None:
    first = PageRequest.first("act_1/campaigns", {"fields": "id"})
    follow = PageRequest.follow(f"{CAMPAIGNS_URL}?after=c1")
    assert not first.is_cursor and first.params == {"fields": "id"}
    assert follow.is_cursor and follow.params == {}


@pytest.mark.asyncio
async def test_pages_are_concatenated_in_order(make_client) -> None:
    client, recorder = make_client(paged(THREE_PAGES))

    records = await client.get_all("act_1/campaigns", {"fields": "id"})

    assert [r["id"] for r in records] == ["1", "2", "3", "4", "5"]
    assert len(recorder.requests) == 3
    assert recorder.params(0)["limit"] == str(DEFAULT_PAGE_SIZE)
    # Cursor pages are re-signed
    for request in recorder.requests:
        assert request.url.params["access_token"] == TOKEN


@pytest.mark.asyncio
async def test_caller_params_are_not_mutated(make_client) -> None:
    client, _ = make_client(paged(THREE_PAGES))
    params = {"fields": "id"}

    await client.get_all("act_1/campaigns", params)
    assert params == {"fields": "id"}


@pytest.mark.asyncio
async def test_explicit_page_size_is_kept(make_client) -> None:
    client, recorder = make_client(paged(THREE_PAGES))

    await client.get_all("act_1/campaigns", {"fields": "id", "limit": 50})
    assert recorder.params(0)["limit"] == "50"


@pytest.mark.asyncio
async def test_hard_cap_fetches_exactly_one_page(make_client) -> None:
    """A caller limit returns the first page only, even when a cursor is offered."""
    client, recorder = make_client(paged(THREE_PAGES))

    records = await client.get_all("act_1/campaigns", {"fields": "id"}, limit=2)

    assert [r["id"] for r in records] == ["1", "2"]
    assert len(recorder.requests) == 1
    assert recorder.params(0)["limit"] == "2"


@pytest.mark.asyncio
async def test_cursor_failure_discards_earlier_pages(make_client) -> None:
    failures = {"c1": httpx.Response(500, text="boom")}
    client, recorder = make_client(paged(THREE_PAGES, failures))

    with pytest.raises(PaginationError) as exc_info:
        await client.get_all("act_1/campaigns", {"fields": "id"})

    error = exc_info.value
    assert error.page == 2
    assert isinstance(error.__cause__, HTTPStatusError)
    assert TOKEN not in error.cursor
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_error_envelope_on_cursor_page_is_pagination_error(make_client) -> None:
    failures = {"c2": httpx.Response(200, json={"error": {"code": 1, "message": "Please reduce the amount of data"}})}
    client, _ = make_client(paged(THREE_PAGES, failures))

    with pytest.raises(PaginationError) as exc_info:
        await client.get_all("act_1/campaigns", {"fields": "id"})

    assert exc_info.value.page == 3
    assert isinstance(exc_info.value.__cause__, GraphAPIError)


@pytest.mark.asyncio
async def test_first_page_failure_is_not_wrapped(make_client) -> None:
    failures = {"": httpx.Response(200, json={"error": {"code": 190, "message": "Invalid token"}})}
    client, _ = make_client(paged(THREE_PAGES, failures))

    with pytest.raises(GraphAPIError):
        await client.get_all("act_1/campaigns", {"fields": "id"})


@pytest.mark.asyncio
async def test_repeated_cursor_raises_instead_of_looping(make_client) -> None:
    pages = {
        "": page(["1"], "c1"),
        "c1": page(["2"], "c1"),
    }
    client, recorder = make_client(paged(pages))

    with pytest.raises(PaginationError) as exc_info:
        await client.get_all("act_1/campaigns", {"fields": "id"})

    assert "already followed" in str(exc_info.value)
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_missing_data_is_an_empty_list(make_client) -> None:
    client, _ = make_client(lambda request: httpx.Response(200, json={}))
    assert await client.get_all("act_1/campaigns") == []


@pytest.mark.asyncio
async def test_non_positive_cap_fetches_every_page(make_client) -> None:
    client, recorder = make_client(paged(THREE_PAGES))

    records = await client.get_all("act_1/campaigns", {"fields": "id"}, limit=-5)

    assert len(records) == 5
    assert recorder.params(0)["limit"] == str(DEFAULT_PAGE_SIZE)
