"""Utility functions for the Meta Ads CLI."""

from typing import Any, Dict, Optional
import logging
import os
import pathlib
import platform
import sys

LOGGER_NAME = "meta-ads"
CONFIG_DIR_NAME = "meta-ads"
SECRET_PARAMS = ("access_token", "appsecret_proof", "client_secret", "fb_exchange_token", "code")

logger = logging.getLogger(LOGGER_NAME)


def get_config_base_dir() -> pathlib.Path:
    """Get the platform-specific base directory for configuration files"""
    if platform.system() == "Windows":
        return pathlib.Path(os.environ.get("APPDATA", ""))
    if platform.system() == "Darwin":  # macOS
        return pathlib.Path.home() / "Library" / "Application Support"
    # Assume Linux/Unix
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return pathlib.Path(xdg)
    return pathlib.Path.home() / ".config"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Set up logging to file for troubleshooting.

    Called once from the CLI entry point. Library use of the package never
    touches the filesystem for logging.
    """
    log_dir = get_config_base_dir() / CONFIG_DIR_NAME
    log_file = log_dir / "meta_ads_debug.log"

    level_name = (level or os.environ.get("META_ADS_LOG_LEVEL") or "DEBUG").upper()
    log_level = getattr(logging, level_name, logging.DEBUG)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(str(log_file), mode="a")
    except OSError as e:
        # Without a writable config dir the command runs unlogged
        print_err(f"warning: debug log disabled ({e})")
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.addHandler(handler)
    logger.setLevel(log_level)
    logger.propagate = False

    logger.info(f"Logging initialized. Log file: {log_file}")
    logger.info(f"Platform: {platform.system()} {platform.release()}")
    return logger


def mask_secret(value: str) -> str:
    """Mask a token or secret for display, keeping a short prefix and suffix."""
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}...{value[-4:]}"


def mask_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a copy of request params safe for logging."""
    return {k: ("***" if k in SECRET_PARAMS else v) for k, v in (params or {}).items()}


def normalize_account_id(account_id: str) -> str:
    """Ensure the account ID has the act_ prefix."""
    if account_id.startswith("act_"):
        return account_id
    return f"act_{account_id}"


def print_err(message: str) -> None:
    """Operator-facing warning on stderr."""
    print(message, file=sys.stderr)
