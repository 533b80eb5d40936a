"""Campaign-related functionality for the Meta Ads CLI."""

from typing import Any, Dict, List, Optional

from .api import MetaClient
from .exceptions import UsageError
from .output import emit, format_budget, print_key_value, print_table, truncate

CAMPAIGN_LIST_FIELDS = (
    "id,name,status,effective_status,objective,daily_budget,lifetime_budget,"
    "budget_remaining,bid_strategy,start_time,stop_time,created_time"
)
CAMPAIGN_DETAIL_FIELDS = CAMPAIGN_LIST_FIELDS + ",updated_time"


def status_filter(status: str) -> str:
    """Graph API list filters take a JSON array: ACTIVE -> ["ACTIVE"]"""
    return f'["{status}"]'


async def list_campaigns(
    client: MetaClient,
    account_id: str,
    status: str = "",
    limit: int = 0,
) -> List[Dict[str, Any]]:
    """
    Get campaigns for a Meta Ads account with optional filtering.

    Args:
        client: Authenticated Graph API client
        account_id: Meta Ads account ID (format: act_XXXXXXXXX)
        status: Filter by effective status (empty for all, or 'ACTIVE', 'PAUSED', etc.)
        limit: Maximum number of campaigns to return; 0 or less fetches every page
    """
    params = {"fields": CAMPAIGN_LIST_FIELDS}
    if status:
        params["effective_status"] = status_filter(status)
    return await client.get_all(f"{account_id}/campaigns", params, limit=limit if limit > 0 else None)


async def get_campaign(client: MetaClient, campaign_id: str) -> Dict[str, Any]:
    """Get detailed information about a specific campaign."""
    return await client.get_json(campaign_id, {"fields": CAMPAIGN_DETAIL_FIELDS})


async def create_campaign(
    client: MetaClient,
    account_id: str,
    name: str,
    objective: str,
    status: str = "PAUSED",
    daily_budget: Optional[str] = None,
    lifetime_budget: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a new campaign in a Meta Ads account.

    Args:
        client: Authenticated Graph API client
        account_id: Meta Ads account ID (format: act_XXXXXXXXX)
        name: Campaign name
        objective: Campaign objective (OUTCOME_SALES, OUTCOME_AWARENESS, etc.)
        status: Initial campaign status (default: PAUSED)
        daily_budget: Daily budget in account currency (in cents) as a string
        lifetime_budget: Lifetime budget in account currency (in cents) as a string

    Returns:
        The API response, ``{"id": "<new campaign id>"}``
    """
    if not name:
        raise UsageError("No campaign name provided")
    if not objective:
        raise UsageError("No campaign objective provided")

    data: Dict[str, Any] = {
        "name": name,
        "objective": objective,
        "status": status,
        # Required by the API even when no category applies
        "special_ad_categories": [],
    }
    if daily_budget:
        data["daily_budget"] = str(daily_budget)
    if lifetime_budget:
        data["lifetime_budget"] = str(lifetime_budget)

    return await client.post_json(f"{account_id}/campaigns", data)


async def pause_campaign(client: MetaClient, campaign_id: str) -> Dict[str, Any]:
    return await client.post_json(campaign_id, {"status": "PAUSED"})


async def update_campaign(
    client: MetaClient,
    campaign_id: str,
    name: Optional[str] = None,
    status: Optional[str] = None,
    daily_budget: Optional[str] = None,
    lifetime_budget: Optional[str] = None,
) -> Dict[str, Any]:
    """Update the given campaign fields; at least one must be set."""
    changes = {
        "name": name,
        "status": status,
        "daily_budget": daily_budget,
        "lifetime_budget": lifetime_budget,
    }
    data = {key: value for key, value in changes.items() if value}
    if not data:
        raise UsageError("no fields to update - use --name, --status, --daily-budget, or --lifetime-budget")
    return await client.post_json(campaign_id, data)


def _render_list(campaigns: List[Dict[str, Any]]) -> None:
    headers = ["ID", "NAME", "STATUS", "OBJECTIVE", "DAILY BUDGET", "LIFETIME BUDGET"]
    rows = [
        [
            c.get("id", ""),
            truncate(c.get("name", ""), 45),
            c.get("effective_status", ""),
            c.get("objective", ""),
            format_budget(c.get("daily_budget")),
            format_budget(c.get("lifetime_budget")),
        ]
        for c in campaigns
    ]
    print_table(headers, rows)


def _render_detail(c: Dict[str, Any]) -> None:
    print_key_value([
        ["ID", c.get("id", "")],
        ["Name", c.get("name", "")],
        ["Status", c.get("status", "")],
        ["Effective Status", c.get("effective_status", "")],
        ["Objective", c.get("objective", "")],
        ["Daily Budget", format_budget(c.get("daily_budget"))],
        ["Lifetime Budget", format_budget(c.get("lifetime_budget"))],
        ["Budget Remaining", format_budget(c.get("budget_remaining"))],
        ["Bid Strategy", c.get("bid_strategy", "")],
        ["Start Time", c.get("start_time", "")],
        ["Stop Time", c.get("stop_time", "")],
        ["Created", c.get("created_time", "")],
        ["Updated", c.get("updated_time", "")],
    ])


async def _run_list(runtime, args) -> None:
    account = runtime.resolve_account(args.account)
    campaigns = await list_campaigns(runtime.client, account, args.status, args.limit)
    emit(args, campaigns, _render_list)


async def _run_get(runtime, args) -> None:
    campaign = await get_campaign(runtime.client, args.campaign_id)
    emit(args, campaign, _render_detail)


async def _run_create(runtime, args) -> None:
    account = runtime.resolve_account(args.account)
    result = await create_campaign(
        runtime.client, account, args.name, args.objective, args.status, args.daily_budget, args.lifetime_budget
    )
    emit(args, result, lambda r: print(f"Campaign created: {r.get('id', '')}"))


async def _run_pause(runtime, args) -> None:
    result = await pause_campaign(runtime.client, args.campaign_id)
    emit(args, result, lambda r: print(f"Campaign {args.campaign_id} paused"))


async def _run_update(runtime, args) -> None:
    result = await update_campaign(
        runtime.client, args.campaign_id, args.name, args.status, args.daily_budget, args.lifetime_budget
    )
    emit(args, result, lambda r: print(f"Campaign {args.campaign_id} updated"))


def register(subparsers, parents) -> None:
    parser = subparsers.add_parser("campaigns", help="Manage Meta campaigns")
    actions = parser.add_subparsers(dest="action", metavar="<action>", required=True)

    list_parser = actions.add_parser("list", parents=parents, help="List campaigns for an ad account")
    list_parser.add_argument("--status", default="", help="Filter by status (ACTIVE, PAUSED, ARCHIVED, etc.)")
    list_parser.add_argument("--limit", type=int, default=0, help="Max number of campaigns to return (0 = all)")
    list_parser.set_defaults(handler=_run_list)

    get_parser = actions.add_parser("get", parents=parents, help="Get details for a campaign")
    get_parser.add_argument("campaign_id")
    get_parser.set_defaults(handler=_run_get)

    create_parser = actions.add_parser("create", parents=parents, help="Create a new campaign")
    create_parser.add_argument("--name", required=True, help="Campaign name")
    create_parser.add_argument("--objective", required=True, help="Campaign objective e.g. OUTCOME_SALES, OUTCOME_AWARENESS")
    create_parser.add_argument("--daily-budget", help="Daily budget in cents (e.g. 5000 = $50.00)")
    create_parser.add_argument("--lifetime-budget", help="Lifetime budget in cents")
    create_parser.add_argument("--status", default="PAUSED", help="Initial status (ACTIVE or PAUSED)")
    create_parser.set_defaults(handler=_run_create)

    pause_parser = actions.add_parser("pause", parents=parents, help="Pause a campaign")
    pause_parser.add_argument("campaign_id")
    pause_parser.set_defaults(handler=_run_pause)

    update_parser = actions.add_parser("update", parents=parents, help="Update a campaign")
    update_parser.add_argument("campaign_id")
    update_parser.add_argument("--name", help="New campaign name")
    update_parser.add_argument("--status", help="New status (ACTIVE, PAUSED, ARCHIVED, DELETED)")
    update_parser.add_argument("--daily-budget", help="New daily budget in cents")
    update_parser.add_argument("--lifetime-budget", help="New lifetime budget in cents")
    update_parser.set_defaults(handler=_run_update)
