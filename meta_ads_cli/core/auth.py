"""Authentication related functionality for the Meta Ads CLI."""

from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode
import time
import webbrowser

import requests

from .api import META_GRAPH_API_BASE, META_GRAPH_API_VERSION, compute_appsecret_proof
from .callback_server import CALLBACK_HOST, CallbackServer
from .config import (
    DEFAULT_ENV_NAMES,
    TOKEN_TYPE_LONG_LIVED,
    TOKEN_TYPE_MANUAL,
    TOKEN_TYPE_OAUTH,
    Config,
    EnvNames,
)
from .exceptions import AuthFlowError, GraphAPIError
from .utils import logger, print_err

# Auth constants
AUTH_SCOPE = "ads_management,ads_read,business_management"
AUTH_RESPONSE_TYPE = "code"
META_DIALOG_URL = f"https://www.facebook.com/{META_GRAPH_API_VERSION}/dialog/oauth"
META_TOKEN_URL = f"{META_GRAPH_API_BASE}/oauth/access_token"
META_ME_URL = f"{META_GRAPH_API_BASE}/me"
LOGIN_TIMEOUT = 300  # 5 minutes
TOKEN_REQUEST_TIMEOUT = 30


class TokenInfo:
    """Stores token information including expiration"""

    def __init__(self, access_token: str, expires_in: Optional[int] = None):
        self.access_token = access_token
        self.expires_in = expires_in
        self.created_at = int(time.time())

    @property
    def expires_at(self) -> Optional[int]:
        if not self.expires_in:
            return None
        return self.created_at + self.expires_in

    def __repr__(self) -> str:
        return f"TokenInfo(expires_in={self.expires_in})"


def require_app_credentials(app_id: str, app_secret: str, env_names: EnvNames = DEFAULT_ENV_NAMES) -> None:
    """Fail fast, naming whichever app credential is missing."""
    if not app_id:
        raise AuthFlowError(f"{env_names.app_id} not set - export {env_names.app_id}=<your_app_id>")
    if not app_secret:
        raise AuthFlowError(f"{env_names.app_secret} not set - export {env_names.app_secret}=<your_app_secret>")


def build_auth_url(app_id: str, redirect_uri: str, scope: str = AUTH_SCOPE) -> str:
    """Generate the Facebook OAuth dialog URL for the authorization-code flow"""
    params = {
        "client_id": app_id,
        "redirect_uri": redirect_uri,
        "scope": scope,
        "response_type": AUTH_RESPONSE_TYPE,
    }
    return f"{META_DIALOG_URL}?{urlencode(params)}"


def open_browser(url: str) -> bool:
    """Open url in the default browser. Best-effort: never raises."""
    try:
        opened = webbrowser.open(url)
    except (webbrowser.Error, OSError) as e:
        logger.warning(f"Could not open browser: {e}")
        return False
    if not opened:
        logger.warning("No runnable browser found")
    return opened


def _graph_get(url: str, params: Dict[str, Any], session=None) -> Dict[str, Any]:
    """GET a token or identity endpoint and return the decoded object."""
    http = session or requests
    try:
        response = http.get(url, params=params, timeout=TOKEN_REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise AuthFlowError(f"request to {url} failed: {e}") from e

    try:
        data = response.json()
    except ValueError as e:
        raise AuthFlowError(f"unexpected response from {url} (HTTP {response.status_code}): {response.text[:200]}") from e

    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        error = GraphAPIError.from_envelope(data["error"])
        raise AuthFlowError(str(error)) from error
    if not isinstance(data, dict):
        raise AuthFlowError(f"unexpected response from {url}: {response.text[:200]}")
    if response.status_code >= 400:
        raise AuthFlowError(f"HTTP {response.status_code} from {url}: {response.text[:200]}")
    return data


def _token_from(data: Dict[str, Any]) -> TokenInfo:
    token = data.get("access_token")
    if not token:
        raise AuthFlowError(f"no access_token in response: {sorted(data)}")
    expires_in = data.get("expires_in")
    return TokenInfo(access_token=token, expires_in=expires_in if isinstance(expires_in, int) else None)


def exchange_code(code: str, app_id: str, app_secret: str, redirect_uri: str, session=None) -> TokenInfo:
    """Exchange an OAuth authorization code for a short-lived access token."""
    params = {
        "client_id": app_id,
        "client_secret": app_secret,
        "redirect_uri": redirect_uri,
        "code": code,
    }
    logger.debug(f"Making code exchange request to {META_TOKEN_URL}")
    return _token_from(_graph_get(META_TOKEN_URL, params, session))


def extend_token(short_lived_token: str, app_id: str, app_secret: str, session=None) -> TokenInfo:
    """
    Exchange a short-lived token for a long-lived token (60 days validity).

    Args:
        short_lived_token: The short-lived user access token
        app_id: Meta App ID
        app_secret: Meta App secret

    Returns:
        TokenInfo with the long-lived token

    Raises:
        AuthFlowError: the provider rejected the exchange or was unreachable
    """
    params = {
        "grant_type": "fb_exchange_token",
        "client_id": app_id,
        "client_secret": app_secret,
        "fb_exchange_token": short_lived_token,
    }
    logger.info("Attempting to exchange short-lived token for long-lived token")
    token = _token_from(_graph_get(META_TOKEN_URL, params, session))
    if token.expires_in:
        logger.info(f"Received long-lived token, expires in {token.expires_in} seconds (~{token.expires_in // 86400} days)")
    return token


def validate_token(access_token: str, app_secret: str = "", session=None) -> Tuple[str, str]:
    """Call GET /me and return (user_id, user_name).

    A revoked or expired token is rejected here with AuthFlowError.
    """
    params = {"access_token": access_token, "fields": "id,name"}
    proof = compute_appsecret_proof(access_token, app_secret)
    if proof:
        params["appsecret_proof"] = proof
    data = _graph_get(META_ME_URL, params, session)
    user_id = str(data.get("id") or "")
    if not user_id:
        raise AuthFlowError("identity response did not include a user id")
    return user_id, str(data.get("name") or "")


def login(
    app_id: str,
    app_secret: str,
    existing: Optional[Config] = None,
    timeout: float = LOGIN_TIMEOUT,
    env_names: EnvNames = DEFAULT_ENV_NAMES,
    session=None,
    host: str = CALLBACK_HOST,
    port: int = 0,
) -> Config:
    """
    Run the browser OAuth flow and return the credential to persist.

    Binds a loopback listener, sends the user to the Meta login dialog, waits
    for the redirect, exchanges the code for a short-lived token, upgrades it
    to a long-lived token and fetches the user's identity. Nothing is returned
    (and so nothing can be saved) unless every step succeeds.

    Args:
        app_id: Meta App ID
        app_secret: Meta App secret
        existing: Currently stored config; its default account is preserved
        timeout: Seconds to wait for the browser redirect

    Returns:
        Config holding the long-lived token and its owner
    """
    require_app_credentials(app_id, app_secret, env_names)

    with CallbackServer(host=host, port=port) as callback:
        redirect_uri = callback.redirect_uri
        auth_url = build_auth_url(app_id, redirect_uri)

        print("\nOpening browser for Meta authentication...")
        print(f"If the browser does not open automatically, visit:\n  {auth_url}\n")
        open_browser(auth_url)
        print(f"Waiting for callback on {redirect_uri} ...")

        result = callback.wait(timeout)

    if not result.ok:
        logger.error(f"OAuth callback error: {result.error}")
        raise AuthFlowError(f"OAuth error: {result.error} - {result.error_description}")

    print("Exchanging authorization code for token...")
    try:
        short_lived = exchange_code(result.code, app_id, app_secret, redirect_uri, session)
    except AuthFlowError as e:
        raise AuthFlowError(f"failed to exchange code: {e}") from e

    print("Upgrading to long-lived token...")
    try:
        long_lived = extend_token(short_lived.access_token, app_id, app_secret, session)
    except AuthFlowError as e:
        raise AuthFlowError(f"failed to upgrade token: {e}") from e

    print("Fetching user info...")
    try:
        user_id, user_name = validate_token(long_lived.access_token, app_secret, session)
    except AuthFlowError as e:
        raise AuthFlowError(f"failed to fetch user info: {e}") from e

    return Config(
        access_token=long_lived.access_token,
        token_type=TOKEN_TYPE_OAUTH,
        user_id=user_id,
        user_name=user_name,
        default_account=existing.default_account if existing else "",
        app_id=app_id,
        app_secret=app_secret,
        token_expires_at=long_lived.expires_at,
    )


def set_token(
    access_token: str,
    app_id: str = "",
    app_secret: str = "",
    extend: bool = True,
    existing: Optional[Config] = None,
    env_names: EnvNames = DEFAULT_ENV_NAMES,
    session=None,
) -> Config:
    """Validate a pasted token, upgrading it to long-lived when possible.

    A failed upgrade is only a warning and the original token is kept; a
    failed validation raises and nothing is returned for saving.
    """
    final = TokenInfo(access_token)
    token_type = TOKEN_TYPE_MANUAL

    if extend and app_id and app_secret:
        print("App credentials found - upgrading to long-lived token (~60 days)...")
        try:
            final = extend_token(access_token, app_id, app_secret, session)
            token_type = TOKEN_TYPE_LONG_LIVED
            print("Token upgraded to long-lived.")
        except AuthFlowError as e:
            logger.warning(f"Token upgrade failed: {e}")
            print_err(f"Warning: could not upgrade to long-lived token: {e}")
            print_err("         Saving original token. Use --no-extend to suppress this warning.")
    elif extend:
        print_err(f"Note: {env_names.app_id} / {env_names.app_secret} not available - saving token as-is (not extended).")
        print_err("      To extend later: meta-ads auth extend-token <token> --save")

    print("Validating token...")
    try:
        user_id, user_name = validate_token(final.access_token, app_secret, session)
    except AuthFlowError as e:
        raise AuthFlowError(f"token validation failed: {e}") from e

    return Config(
        access_token=final.access_token,
        token_type=token_type,
        user_id=user_id,
        user_name=user_name,
        default_account=existing.default_account if existing else "",
        app_id=app_id or (existing.app_id if existing else ""),
        app_secret=app_secret or (existing.app_secret if existing else ""),
        token_expires_at=final.expires_at,
    )


def extend_and_validate(
    short_lived_token: str,
    app_id: str,
    app_secret: str,
    existing: Optional[Config] = None,
    env_names: EnvNames = DEFAULT_ENV_NAMES,
    session=None,
) -> Config:
    """Explicit extend-token flow with --save: upgrade, confirm the owner, build the config."""
    require_app_credentials(app_id, app_secret, env_names)
    long_lived = extend_token(short_lived_token, app_id, app_secret, session)
    try:
        user_id, user_name = validate_token(long_lived.access_token, app_secret, session)
    except AuthFlowError as e:
        raise AuthFlowError(f"token validation failed: {e}") from e
    return Config(
        access_token=long_lived.access_token,
        token_type=TOKEN_TYPE_LONG_LIVED,
        user_id=user_id,
        user_name=user_name,
        default_account=existing.default_account if existing else "",
        app_id=app_id,
        app_secret=app_secret,
        token_expires_at=long_lived.expires_at,
    )
