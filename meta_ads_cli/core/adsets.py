"""Ad set-related functionality for the Meta Ads CLI."""

from typing import Any, Dict, List, Optional

from .api import MetaClient
from .campaigns import status_filter
from .exceptions import UsageError
from .output import emit, format_budget, print_key_value, print_table, truncate

ADSET_LIST_FIELDS = (
    "id,name,status,effective_status,campaign_id,daily_budget,lifetime_budget,"
    "budget_remaining,bid_amount,billing_event,optimization_goal,start_time,end_time,created_time"
)
ADSET_DETAIL_FIELDS = ADSET_LIST_FIELDS + ",updated_time"


async def list_adsets(
    client: MetaClient,
    account_id: str,
    campaign_id: str = "",
    status: str = "",
) -> List[Dict[str, Any]]:
    """
    Get every ad set of an account, optionally narrowed to one campaign.

    Args:
        client: Authenticated Graph API client
        account_id: Meta Ads account ID (format: act_XXXXXXXXX)
        campaign_id: Only ad sets of this campaign
        status: Filter by effective status
    """
    params = {"fields": ADSET_LIST_FIELDS}
    if campaign_id:
        params["campaign_id"] = campaign_id
    if status:
        params["effective_status"] = status_filter(status)
    return await client.get_all(f"{account_id}/adsets", params)


async def get_adset(client: MetaClient, adset_id: str) -> Dict[str, Any]:
    return await client.get_json(adset_id, {"fields": ADSET_DETAIL_FIELDS})


async def pause_adset(client: MetaClient, adset_id: str) -> Dict[str, Any]:
    return await client.post_json(adset_id, {"status": "PAUSED"})


async def update_adset_budget(
    client: MetaClient,
    adset_id: str,
    daily_budget: Optional[str] = None,
    lifetime_budget: Optional[str] = None,
) -> Dict[str, Any]:
    """Budgets are in cents of the account currency."""
    data = {}
    if daily_budget:
        data["daily_budget"] = str(daily_budget)
    if lifetime_budget:
        data["lifetime_budget"] = str(lifetime_budget)
    if not data:
        raise UsageError("no budget to update - use --daily-budget or --lifetime-budget")
    return await client.post_json(adset_id, data)


def _render_list(adsets: List[Dict[str, Any]]) -> None:
    headers = ["ID", "NAME", "STATUS", "CAMPAIGN", "DAILY BUDGET", "OPTIMIZATION"]
    rows = [
        [
            a.get("id", ""),
            truncate(a.get("name", ""), 40),
            a.get("effective_status", ""),
            a.get("campaign_id", ""),
            format_budget(a.get("daily_budget")),
            a.get("optimization_goal", ""),
        ]
        for a in adsets
    ]
    print_table(headers, rows)


def _render_detail(a: Dict[str, Any]) -> None:
    print_key_value([
        ["ID", a.get("id", "")],
        ["Name", a.get("name", "")],
        ["Status", a.get("status", "")],
        ["Effective Status", a.get("effective_status", "")],
        ["Campaign ID", a.get("campaign_id", "")],
        ["Daily Budget", format_budget(a.get("daily_budget"))],
        ["Lifetime Budget", format_budget(a.get("lifetime_budget"))],
        ["Budget Remaining", format_budget(a.get("budget_remaining"))],
        ["Bid Amount", format_budget(a.get("bid_amount"))],
        ["Billing Event", a.get("billing_event", "")],
        ["Optimization Goal", a.get("optimization_goal", "")],
        ["Start Time", a.get("start_time", "")],
        ["End Time", a.get("end_time", "")],
        ["Created", a.get("created_time", "")],
        ["Updated", a.get("updated_time", "")],
    ])


async def _run_list(runtime, args) -> None:
    account = runtime.resolve_account(args.account)
    adsets = await list_adsets(runtime.client, account, args.campaign, args.status)
    emit(args, adsets, _render_list)


async def _run_get(runtime, args) -> None:
    emit(args, await get_adset(runtime.client, args.adset_id), _render_detail)


async def _run_pause(runtime, args) -> None:
    result = await pause_adset(runtime.client, args.adset_id)
    emit(args, result, lambda r: print(f"Ad set {args.adset_id} paused"))


async def _run_update_budget(runtime, args) -> None:
    result = await update_adset_budget(runtime.client, args.adset_id, args.daily_budget, args.lifetime_budget)
    emit(args, result, lambda r: print(f"Ad set {args.adset_id} budget updated"))


def register(subparsers, parents) -> None:
    parser = subparsers.add_parser("adsets", help="Manage Meta ad sets")
    actions = parser.add_subparsers(dest="action", metavar="<action>", required=True)

    list_parser = actions.add_parser("list", parents=parents, help="List ad sets for an ad account")
    list_parser.add_argument("--campaign", default="", help="Filter by campaign ID")
    list_parser.add_argument("--status", default="", help="Filter by status (ACTIVE, PAUSED, etc.)")
    list_parser.set_defaults(handler=_run_list)

    get_parser = actions.add_parser("get", parents=parents, help="Get details for an ad set")
    get_parser.add_argument("adset_id")
    get_parser.set_defaults(handler=_run_get)

    pause_parser = actions.add_parser("pause", parents=parents, help="Pause an ad set")
    pause_parser.add_argument("adset_id")
    pause_parser.set_defaults(handler=_run_pause)

    budget_parser = actions.add_parser("update-budget", parents=parents, help="Update the budget for an ad set")
    budget_parser.add_argument("adset_id")
    budget_parser.add_argument("--daily-budget", help="New daily budget in cents (e.g. 5000 = $50.00)")
    budget_parser.add_argument("--lifetime-budget", help="New lifetime budget in cents")
    budget_parser.set_defaults(handler=_run_update_budget)
