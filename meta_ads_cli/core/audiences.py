"""Custom audience listing for the Meta Ads CLI."""

from typing import Any, Dict, List

from .api import MetaClient
from .output import emit, format_count, print_table, truncate

AUDIENCE_FIELDS = (
    "id,name,subtype,approximate_count_lower_bound,approximate_count_upper_bound,"
    "delivery_status,description,time_content_updated"
)


async def list_audiences(client: MetaClient, account_id: str) -> List[Dict[str, Any]]:
    return await client.get_all(f"{account_id}/customaudiences", {"fields": AUDIENCE_FIELDS})


def _render_list(audiences: List[Dict[str, Any]]) -> None:
    headers = ["ID", "NAME", "SUBTYPE", "SIZE (LOW)", "SIZE (HIGH)", "STATUS"]
    rows = []
    for a in audiences:
        delivery = a.get("delivery_status") or {}
        rows.append([
            a.get("id", ""),
            truncate(a.get("name", ""), 40),
            a.get("subtype", ""),
            format_count(a.get("approximate_count_lower_bound")),
            format_count(a.get("approximate_count_upper_bound")),
            truncate(delivery.get("description", "") if isinstance(delivery, dict) else "", 30),
        ])
    print_table(headers, rows)


async def _run_list(runtime, args) -> None:
    account = runtime.resolve_account(args.account)
    emit(args, await list_audiences(runtime.client, account), _render_list)


def register(subparsers, parents) -> None:
    parser = subparsers.add_parser("audiences", help="Manage Meta custom audiences")
    actions = parser.add_subparsers(dest="action", metavar="<action>", required=True)

    list_parser = actions.add_parser("list", parents=parents, help="List custom audiences for an ad account")
    list_parser.set_defaults(handler=_run_list)
