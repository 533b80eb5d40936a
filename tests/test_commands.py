"""Tests for the resource commands: paths, fields and filters sent to the Graph API."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from meta_ads_cli.core import accounts, ads, adsets, audiences, campaigns, insights, pixels
from meta_ads_cli.core.config import Config, ConfigStore
from meta_ads_cli.core.exceptions import UsageError


def listing(records: list[dict] | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"success": True, "id": "new_1"})
        return httpx.Response(200, json={"data": records or []})

    return handler


@pytest.mark.asyncio
async def test_list_campaigns_with_status_and_cap(make_client) -> None:
    client, recorder = make_client(listing([{"id": "1"}]))

    result = await campaigns.list_campaigns(client, "act_1", status="ACTIVE", limit=5)

    assert result == [{"id": "1"}]
    request = recorder.requests[0]
    assert request.url.path.endswith("/act_1/campaigns")
    params = recorder.params()
    assert params["effective_status"] == '["ACTIVE"]'
    assert params["limit"] == "5"
    assert "objective" in params["fields"]


@pytest.mark.asyncio
async def test_negative_campaign_limit_is_not_a_cap(make_client) -> None:
    client, recorder = make_client(listing([{"id": "1"}]))

    await campaigns.list_campaigns(client, "act_1", limit=-5)

    assert recorder.params()["limit"] == "100"


@pytest.mark.asyncio
async def test_create_campaign_posts_required_fields(make_client) -> None:
    client, recorder = make_client(listing())

    result = await campaigns.create_campaign(client, "act_1", "Spring", "OUTCOME_SALES", daily_budget="5000")

    assert result["id"] == "new_1"
    form = recorder.form()
    assert form["name"] == "Spring"
    assert form["objective"] == "OUTCOME_SALES"
    assert form["status"] == "PAUSED"
    assert form["special_ad_categories"] == "[]"
    assert form["daily_budget"] == "5000"
    assert "lifetime_budget" not in form


@pytest.mark.asyncio
async def test_update_campaign_needs_a_change(make_client) -> None:
    client, recorder = make_client(listing())

    with pytest.raises(UsageError):
        await campaigns.update_campaign(client, "123")
    assert recorder.requests == []

    await campaigns.update_campaign(client, "123", status="ACTIVE")
    form = recorder.form()
    assert form["status"] == "ACTIVE"
    assert set(form) == {"status", "access_token"}


@pytest.mark.asyncio
async def test_pause_posts_paused_status(make_client) -> None:
    client, recorder = make_client(listing())

    await campaigns.pause_campaign(client, "c1")
    await adsets.pause_adset(client, "s1")
    await ads.pause_ad(client, "a1")

    assert [r.url.path.rsplit("/", 1)[-1] for r in recorder.requests] == ["c1", "s1", "a1"]
    assert all(recorder.form(i)["status"] == "PAUSED" for i in range(3))


@pytest.mark.asyncio
async def test_adset_and_ad_filters(make_client) -> None:
    client, recorder = make_client(listing())

    await adsets.list_adsets(client, "act_1", campaign_id="c1", status="PAUSED")
    assert recorder.params(0)["campaign_id"] == "c1"
    assert recorder.params(0)["effective_status"] == '["PAUSED"]'

    await ads.list_ads(client, "act_1", adset_id="s1")
    assert recorder.requests[1].url.path.endswith("/act_1/ads")
    assert recorder.params(1)["adset_id"] == "s1"
    assert "effective_status" not in recorder.params(1)


@pytest.mark.asyncio
async def test_update_adset_budget(make_client) -> None:
    client, recorder = make_client(listing())

    with pytest.raises(UsageError):
        await adsets.update_adset_budget(client, "s1")

    await adsets.update_adset_budget(client, "s1", lifetime_budget="90000")
    assert recorder.form()["lifetime_budget"] == "90000"


@pytest.mark.asyncio
async def test_audience_and_pixel_paths(make_client) -> None:
    client, recorder = make_client(listing())

    await audiences.list_audiences(client, "act_1")
    await pixels.list_pixels(client, "act_1")
    await accounts.list_accounts(client)

    paths = [r.url.path for r in recorder.requests]
    assert paths[0].endswith("/act_1/customaudiences")
    assert paths[1].endswith("/act_1/adspixels")
    assert paths[2].endswith("/me/adaccounts")


@pytest.mark.asyncio
async def test_insights_params(make_client) -> None:
    client, recorder = make_client(listing([{"campaign_id": "1", "campaign_name": "A", "spend": "1.00"}]))

    await insights.get_insights(
        client, "act_1", "2026-01-01", "2026-01-31", level="campaign", fields="spend", breakdowns="age"
    )

    assert recorder.requests[0].url.path.endswith("/act_1/insights")
    params = recorder.params()
    assert params["fields"] == "campaign_id,campaign_name,spend"
    assert json.loads(params["time_range"]) == {"since": "2026-01-01", "until": "2026-01-31"}
    assert params["level"] == "campaign"
    assert params["limit"] == "50"
    assert params["breakdowns"] == "age"


def test_insight_table_columns_follow_first_record() -> None:
    records = [{"account_id": "1", "impressions": "10", "clicks": "2"}]
    assert insights.table_columns(records, "account_id,account_name,impressions,clicks,spend") == [
        "account_id",
        "impressions",
        "clicks",
    ]
    assert insights.table_columns([], "impressions") == []


def test_account_status_labels() -> None:
    assert accounts.account_status_label(1) == "ACTIVE"
    assert accounts.account_status_label(101) == "CLOSED"
    assert accounts.account_status_label(5) == "UNKNOWN(5)"


def test_set_default_account_keeps_credentials(tmp_path: Path) -> None:
    store = ConfigStore(tmp_path / "config.json")
    store.save(Config(access_token="tok", user_id="1", user_name="A"))

    assert accounts.set_default_account(store, "999") == "act_999"

    loaded = store.load()
    assert loaded.default_account == "act_999"
    assert loaded.access_token == "tok"
