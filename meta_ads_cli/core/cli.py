"""Command-line interface for the Meta Ads CLI."""

from typing import List, Optional
import argparse
import asyncio
import platform
import sys
import time

from . import accounts, ads, adsets, audiences, campaigns, insights, pixels
from .auth import extend_and_validate, extend_token, login, require_app_credentials, set_token
from .config import SOURCE_CONFIG, SOURCE_ENV, SOURCE_SHARED, Runtime
from .exceptions import ConfigError, MetaAdsError, NotAuthenticatedError
from .output import emit
from .utils import logger, mask_secret, print_err, setup_logging

RESOURCE_MODULES = (accounts, campaigns, adsets, ads, audiences, pixels, insights)

SOURCE_LABELS = {
    SOURCE_ENV: "environment",
    SOURCE_CONFIG: "meta-ads config",
    SOURCE_SHARED: "meta-auth shared config",
}


def _add_global_flags(parser: argparse.ArgumentParser, default) -> None:
    parser.add_argument("-a", "--account", default=default, help="Ad account ID (overrides default)")
    parser.add_argument("--json", action="store_true", default=default, help="Force JSON output")
    parser.add_argument("--pretty", action="store_true", default=default, help="Force pretty-printed JSON output")


def _run_login(runtime: Runtime, args) -> None:
    app_id, app_secret = runtime.app_credentials()
    config = login(app_id, app_secret, existing=runtime.config, env_names=runtime.env_names)
    runtime.store.save(config)
    print(f"\nLogged in as {config.user_name} (ID: {config.user_id})")
    print(f"Token saved to {runtime.store.path}")


def _run_set_token(runtime: Runtime, args) -> None:
    app_id, app_secret = runtime.app_credentials()
    config = set_token(
        args.token,
        app_id,
        app_secret,
        extend=not args.no_extend,
        existing=runtime.config,
        env_names=runtime.env_names,
    )
    runtime.store.save(config)
    print(f"Token saved. Logged in as {config.user_name} (ID: {config.user_id})")


def _run_extend_token(runtime: Runtime, args) -> None:
    app_id, app_secret = runtime.app_credentials()
    if args.save:
        config = extend_and_validate(
            args.token, app_id, app_secret, existing=runtime.config, env_names=runtime.env_names
        )
        runtime.store.save(config)
        print(f"Long-lived token saved. Logged in as {config.user_name} (ID: {config.user_id})")
        return

    require_app_credentials(app_id, app_secret, runtime.env_names)
    token = extend_token(args.token, app_id, app_secret)
    print(token.access_token)
    if token.expires_in:
        print_err(f"Expires in ~{token.expires_in // 86400} days. Use --save to store it.")


def _run_logout(runtime: Runtime, args) -> None:
    runtime.store.clear()
    print(f"Logged out. Removed {runtime.store.path}")


def _run_status(runtime: Runtime, args) -> None:
    config = runtime.config
    status = {
        "logged_in": config.is_authenticated,
        "user_name": config.user_name,
        "user_id": config.user_id,
        "token_type": config.token_type,
        "default_account": config.default_account,
        "token_expires_at": config.token_expires_at,
        "config_path": str(runtime.store.path),
    }
    emit(args, status, lambda s: _render_status(config, s))


def _render_status(config, status) -> None:
    if not config.is_authenticated:
        print("Not logged in. Run: meta-ads auth login")
        return
    print(f"Logged in as:     {config.user_name} (ID: {config.user_id})")
    print(f"Token type:       {config.token_type or 'unknown'}")
    days = config.days_until_expiry()
    if days is not None:
        print(f"Token expires in: {days} day(s)" if days >= 0 else "Token expires in: expired")
    print(f"Default account:  {config.default_account or '(none)'}")
    print(f"Config:           {status['config_path']}")


def describe_expiry(expires_at, now=None) -> str:
    """Expiry as "12 days left" or "EXPIRED on 2026-01-15"; empty when unknown."""
    if not expires_at:
        return ""
    now = time.time() if now is None else now
    if expires_at <= now:
        return "EXPIRED on " + time.strftime("%Y-%m-%d", time.localtime(expires_at))
    return f"{int((expires_at - now) // 86400)} days left"


def _run_info(runtime: Runtime, args) -> None:
    names = runtime.env_names
    user, expires = "", ""
    try:
        credential = runtime.credential()
        source = SOURCE_LABELS.get(credential.source, credential.source)
        if credential.config is not None:
            user = credential.user_name
            expires = describe_expiry(credential.config.token_expires_at)
    except (NotAuthenticatedError, ConfigError) as e:
        logger.info(f"No usable token for info: {e}")
        source = "none"

    from meta_ads_cli import __version__

    info = {
        "version": __version__,
        "config_path": str(runtime.store.path),
        "shared_config_path": str(runtime.shared_store.path),
        "token_source": source,
        "user": user,
        "expires": expires,
        "env": {
            names.token: mask_secret(runtime.env.get(names.token, "")),
            names.app_id: runtime.env.get(names.app_id, "") or "(not set)",
            names.app_secret: mask_secret(runtime.env.get(names.app_secret, "")),
            names.account: runtime.env.get(names.account, "") or "(not set)",
        },
        "resolution_order": [
            f"{names.token} environment variable",
            str(runtime.store.path),
            str(runtime.shared_store.path),
        ],
    }
    emit(args, info, _render_info)


def _render_info(info) -> None:
    print(f"meta-ads {info['version']}")
    print(f"Config:        {info['config_path']}")
    print(f"Shared config: {info['shared_config_path']}")
    print(f"Token source:  {info['token_source']}")
    if info["user"]:
        print(f"User:          {info['user']}")
    if info["expires"]:
        print(f"Expires:       {info['expires']}")
    print("\nEnvironment:")
    for name, value in info["env"].items():
        print(f"  {name:<18} {value}")
    print("\nToken resolution order:")
    for i, entry in enumerate(info["resolution_order"], 1):
        print(f"  {i}. {entry}")


def _register_auth(subparsers, parents) -> None:
    parser = subparsers.add_parser("auth", help="Manage authentication")
    actions = parser.add_subparsers(dest="action", metavar="<action>", required=True)

    login_parser = actions.add_parser("login", parents=parents, help="Authenticate via browser OAuth")
    login_parser.set_defaults(handler=_run_login)

    set_parser = actions.add_parser("set-token", parents=parents, help="Save an access token directly")
    set_parser.add_argument("token")
    set_parser.add_argument("--no-extend", action="store_true", help="Save the token as-is without upgrading it")
    set_parser.set_defaults(handler=_run_set_token)

    extend_parser = actions.add_parser(
        "extend-token", parents=parents, help="Exchange a short-lived token for a long-lived one (~60 days)"
    )
    extend_parser.add_argument("token")
    extend_parser.add_argument("--save", action="store_true", help="Validate and save the long-lived token")
    extend_parser.set_defaults(handler=_run_extend_token)

    logout_parser = actions.add_parser("logout", parents=parents, help="Remove the stored credentials")
    logout_parser.set_defaults(handler=_run_logout)

    status_parser = actions.add_parser("status", parents=parents, help="Show authentication status")
    status_parser.set_defaults(handler=_run_status)


def build_parser() -> argparse.ArgumentParser:
    from meta_ads_cli import __version__

    parser = argparse.ArgumentParser(prog="meta-ads", description="Meta Ads command-line client")
    parser.add_argument("--version", action="version", version=f"meta-ads {__version__}")
    _add_global_flags(parser, None)
    parser.set_defaults(account=None, json=False, pretty=False)

    # Global flags are also accepted after the subcommand
    common = argparse.ArgumentParser(add_help=False)
    _add_global_flags(common, argparse.SUPPRESS)
    parents = [common]

    subparsers = parser.add_subparsers(dest="command", metavar="<command>", required=True)
    _register_auth(subparsers, parents)
    for module in RESOURCE_MODULES:
        module.register(subparsers, parents)

    info_parser = subparsers.add_parser("info", parents=parents, help="Show configuration and token source")
    info_parser.set_defaults(handler=_run_info)
    return parser


def main(argv: Optional[List[str]] = None, runtime: Optional[Runtime] = None) -> int:
    """Main entry point for the package"""
    setup_logging()
    logger.info("Meta Ads CLI starting")
    logger.info(f"Python version: {platform.python_version()}")
    logger.info(f"Args: {argv if argv is not None else sys.argv[1:]}")

    args = build_parser().parse_args(argv)
    runtime = runtime or Runtime()

    try:
        result = args.handler(runtime, args)
        if asyncio.iscoroutine(result):
            asyncio.run(result)
    except MetaAdsError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print_err(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    return 0
