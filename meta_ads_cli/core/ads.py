"""Ad-related functionality for the Meta Ads CLI."""

from typing import Any, Dict, List

from .api import MetaClient
from .campaigns import status_filter
from .output import cell, emit, format_time, print_key_value, print_table, truncate

AD_LIST_FIELDS = "id,name,status,effective_status,adset_id,campaign_id,created_time,updated_time"
AD_DETAIL_FIELDS = "id,name,status,effective_status,adset_id,campaign_id,creative,created_time,updated_time"


async def list_ads(client: MetaClient, account_id: str, adset_id: str = "", status: str = "") -> List[Dict[str, Any]]:
    params = {"fields": AD_LIST_FIELDS}
    if adset_id:
        params["adset_id"] = adset_id
    if status:
        params["effective_status"] = status_filter(status)
    return await client.get_all(f"{account_id}/ads", params)


async def get_ad(client: MetaClient, ad_id: str) -> Dict[str, Any]:
    return await client.get_json(ad_id, {"fields": AD_DETAIL_FIELDS})


async def pause_ad(client: MetaClient, ad_id: str) -> Dict[str, Any]:
    return await client.post_json(ad_id, {"status": "PAUSED"})


def _render_list(ads: List[Dict[str, Any]]) -> None:
    headers = ["ID", "NAME", "STATUS", "AD SET", "CAMPAIGN", "CREATED"]
    rows = [
        [
            a.get("id", ""),
            truncate(a.get("name", ""), 40),
            a.get("effective_status", ""),
            a.get("adset_id", ""),
            a.get("campaign_id", ""),
            format_time(a.get("created_time")),
        ]
        for a in ads
    ]
    print_table(headers, rows)


def _render_detail(a: Dict[str, Any]) -> None:
    print_key_value([
        ["ID", a.get("id", "")],
        ["Name", a.get("name", "")],
        ["Status", a.get("status", "")],
        ["Effective Status", a.get("effective_status", "")],
        ["Ad Set ID", a.get("adset_id", "")],
        ["Campaign ID", a.get("campaign_id", "")],
        ["Creative", cell(a, "creative")],
        ["Created", a.get("created_time", "")],
        ["Updated", a.get("updated_time", "")],
    ])


async def _run_list(runtime, args) -> None:
    account = runtime.resolve_account(args.account)
    emit(args, await list_ads(runtime.client, account, args.adset, args.status), _render_list)


async def _run_get(runtime, args) -> None:
    emit(args, await get_ad(runtime.client, args.ad_id), _render_detail)


async def _run_pause(runtime, args) -> None:
    result = await pause_ad(runtime.client, args.ad_id)
    emit(args, result, lambda r: print(f"Ad {args.ad_id} paused"))


def register(subparsers, parents) -> None:
    parser = subparsers.add_parser("ads", help="Manage Meta ads")
    actions = parser.add_subparsers(dest="action", metavar="<action>", required=True)

    list_parser = actions.add_parser("list", parents=parents, help="List ads for an ad account")
    list_parser.add_argument("--adset", default="", help="Filter by ad set ID")
    list_parser.add_argument("--status", default="", help="Filter by status (ACTIVE, PAUSED, etc.)")
    list_parser.set_defaults(handler=_run_list)

    get_parser = actions.add_parser("get", parents=parents, help="Get details for an ad")
    get_parser.add_argument("ad_id")
    get_parser.set_defaults(handler=_run_get)

    pause_parser = actions.add_parser("pause", parents=parents, help="Pause an ad")
    pause_parser.add_argument("ad_id")
    pause_parser.set_defaults(handler=_run_pause)
