"""Account-related functionality for the Meta Ads CLI."""

from typing import Any, Dict, List

from .api import MetaClient
from .output import emit, format_budget, print_table, truncate
from .utils import normalize_account_id

ACCOUNT_FIELDS = "id,name,currency,account_status,timezone_name,amount_spent,balance"

ACCOUNT_STATUS_LABELS = {
    1: "ACTIVE",
    2: "DISABLED",
    3: "UNSETTLED",
    7: "PENDING_RISK_REVIEW",
    8: "PENDING_SETTLEMENT",
    9: "IN_GRACE_PERIOD",
    100: "PENDING_CLOSURE",
    101: "CLOSED",
    201: "ANY_ACTIVE",
    202: "ANY_CLOSED",
}


def account_status_label(status: Any) -> str:
    if status in ACCOUNT_STATUS_LABELS:
        return ACCOUNT_STATUS_LABELS[status]
    return f"UNKNOWN({status})"


async def list_accounts(client: MetaClient, user_id: str = "me") -> List[Dict[str, Any]]:
    """
    Get every ad account accessible to a user.

    Args:
        client: Authenticated Graph API client
        user_id: Meta user ID or "me" for the current user
    """
    return await client.get_all(f"{user_id}/adaccounts", {"fields": ACCOUNT_FIELDS})


def set_default_account(store, account_id: str) -> str:
    """Store the default account in the config file, keeping everything else."""
    config = store.load()
    config.default_account = normalize_account_id(account_id)
    store.save(config)
    return config.default_account


def _render_list(accounts: List[Dict[str, Any]]) -> None:
    headers = ["ID", "NAME", "CURRENCY", "STATUS", "TIMEZONE", "AMOUNT SPENT", "BALANCE"]
    rows = [
        [
            a.get("id", ""),
            truncate(a.get("name", ""), 40),
            a.get("currency", ""),
            account_status_label(a.get("account_status")),
            a.get("timezone_name", ""),
            format_budget(a.get("amount_spent")),
            format_budget(a.get("balance")),
        ]
        for a in accounts
    ]
    print_table(headers, rows)


async def _run_list(runtime, args) -> None:
    emit(args, await list_accounts(runtime.client), _render_list)


def _run_set_default(runtime, args) -> None:
    account = set_default_account(runtime.store, args.account_id)
    emit(args, {"default_account": account}, lambda r: print(f"Default account set to {account}"))


def register(subparsers, parents) -> None:
    parser = subparsers.add_parser("accounts", help="Manage Meta ad accounts")
    actions = parser.add_subparsers(dest="action", metavar="<action>", required=True)

    list_parser = actions.add_parser("list", parents=parents, help="List all ad accounts accessible to you")
    list_parser.set_defaults(handler=_run_list)

    default_parser = actions.add_parser(
        "set-default", parents=parents, help="Use this account when --account is not given"
    )
    default_parser.add_argument("account_id", help="Ad account ID (act_ prefix optional)")
    default_parser.set_defaults(handler=_run_set_default)
