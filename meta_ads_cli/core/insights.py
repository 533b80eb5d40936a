"""Insights and reporting functionality for the Meta Ads CLI."""

from typing import Any, Dict, List, Optional
import json

from .api import MetaClient
from .output import emit, print_table, rows_from

DEFAULT_INSIGHT_FIELDS = "impressions,clicks,spend,ctr,cpc,reach"
DEFAULT_INSIGHT_PAGE_SIZE = 50
INSIGHT_LEVELS = ("account", "campaign", "adset", "ad")

# Identity columns prepended to the requested metrics at each level
LEVEL_NAME_FIELDS = {
    "campaign": "campaign_id,campaign_name",
    "adset": "adset_id,adset_name",
    "ad": "ad_id,ad_name",
    "account": "account_id,account_name",
}


def insight_fields(level: str, fields: str = DEFAULT_INSIGHT_FIELDS) -> str:
    return f"{LEVEL_NAME_FIELDS.get(level, LEVEL_NAME_FIELDS['account'])},{fields}"


async def get_insights(
    client: MetaClient,
    object_id: str,
    since: str,
    until: str,
    level: str = "account",
    fields: str = DEFAULT_INSIGHT_FIELDS,
    breakdowns: Optional[str] = None,
    page_size: int = DEFAULT_INSIGHT_PAGE_SIZE,
) -> List[Dict[str, Any]]:
    """
    Get performance insights for an account, campaign, ad set or ad.

    Args:
        client: Authenticated Graph API client
        object_id: ID of the account (act_...), campaign, ad set or ad
        since: Start date, YYYY-MM-DD
        until: End date, YYYY-MM-DD
        level: Aggregation level: account, campaign, adset or ad
        fields: Comma-separated metrics
        breakdowns: Optional comma-separated breakdowns (age, gender, country, ...)
        page_size: Records per page; every page is fetched
    """
    params = {
        "fields": insight_fields(level, fields),
        "time_range": json.dumps({"since": since, "until": until}),
        "level": level,
        "limit": page_size or DEFAULT_INSIGHT_PAGE_SIZE,
    }
    if breakdowns:
        params["breakdowns"] = breakdowns
    return await client.get_all(f"{object_id}/insights", params)


def table_columns(records: List[Dict[str, Any]], fields: str) -> List[str]:
    """Requested fields that the first record actually carries."""
    if not records:
        return []
    first = records[0]
    return [f for f in fields.split(",") if f and f in first]


def _render(records: List[Dict[str, Any]], fields: str) -> None:
    if not records:
        print("No insights found for the specified period.")
        return
    columns = table_columns(records, fields)
    print_table([c.upper() for c in columns], rows_from(records, columns))


async def _run_get(runtime, args) -> None:
    object_id = args.object_id or runtime.resolve_account(args.account)
    records = await get_insights(
        runtime.client,
        object_id,
        args.since,
        args.until,
        level=args.level,
        fields=args.fields,
        breakdowns=args.breakdowns,
        page_size=args.limit,
    )
    requested = insight_fields(args.level, args.fields)
    if args.breakdowns:
        requested = f"{requested},{args.breakdowns}"
    emit(args, records, lambda r: _render(r, requested))


def register(subparsers, parents) -> None:
    parser = subparsers.add_parser("insights", help="Query Meta Ads performance insights")
    actions = parser.add_subparsers(dest="action", metavar="<action>", required=True)

    get_parser = actions.add_parser(
        "get", parents=parents, help="Get insights for an account, campaign, ad set or ad"
    )
    get_parser.add_argument("object_id", nargs="?", default="", help="Object ID (defaults to the ad account)")
    get_parser.add_argument("--since", required=True, help="Start date (YYYY-MM-DD)")
    get_parser.add_argument("--until", required=True, help="End date (YYYY-MM-DD)")
    get_parser.add_argument("--level", default="account", choices=INSIGHT_LEVELS, help="Aggregation level")
    get_parser.add_argument("--fields", default=DEFAULT_INSIGHT_FIELDS, help="Comma-separated metrics")
    get_parser.add_argument("--breakdowns", default=None, help="Comma-separated breakdowns, e.g. age,gender")
    get_parser.add_argument("--limit", type=int, default=DEFAULT_INSIGHT_PAGE_SIZE, help="Records per page")
    get_parser.set_defaults(handler=_run_get)
