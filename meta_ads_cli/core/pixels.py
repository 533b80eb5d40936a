"""Pixel listing for the Meta Ads CLI."""

from typing import Any, Dict, List

from .api import MetaClient
from .output import emit, format_time, print_table, truncate

PIXEL_FIELDS = "id,name,last_fired_time,creation_time,is_unavailable"


async def list_pixels(client: MetaClient, account_id: str) -> List[Dict[str, Any]]:
    return await client.get_all(f"{account_id}/adspixels", {"fields": PIXEL_FIELDS})


def _render_list(pixels: List[Dict[str, Any]]) -> None:
    headers = ["ID", "NAME", "LAST FIRED", "CREATED", "AVAILABLE"]
    rows = [
        [
            p.get("id", ""),
            truncate(p.get("name", ""), 40),
            format_time(p.get("last_fired_time")),
            format_time(p.get("creation_time")),
            "no" if p.get("is_unavailable") else "yes",
        ]
        for p in pixels
    ]
    print_table(headers, rows)


async def _run_list(runtime, args) -> None:
    account = runtime.resolve_account(args.account)
    emit(args, await list_pixels(runtime.client, account), _render_list)


def register(subparsers, parents) -> None:
    parser = subparsers.add_parser("pixels", help="Manage Meta pixels")
    actions = parser.add_subparsers(dest="action", metavar="<action>", required=True)

    list_parser = actions.add_parser("list", parents=parents, help="List pixels for an ad account")
    list_parser.set_defaults(handler=_run_list)
