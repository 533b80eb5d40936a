"""Configuration storage and credential resolution for the Meta Ads CLI."""

from typing import Any, Callable, Dict, Mapping, Optional
import json
import os
import pathlib
import time

from .api import MetaClient
from .exceptions import ConfigError, NotAuthenticatedError, UsageError
from .utils import CONFIG_DIR_NAME, get_config_base_dir, logger, normalize_account_id, print_err

SHARED_CONFIG_DIR_NAME = "meta-auth"
CONFIG_FILE_NAME = "config.json"
EXPIRY_WARNING_DAYS = 7

TOKEN_TYPE_OAUTH = "oauth"  # browser OAuth flow (long-lived, ~60 days)
TOKEN_TYPE_MANUAL = "manual"  # pasted via auth set-token
TOKEN_TYPE_LONG_LIVED = "long-lived"  # explicitly extended via auth extend-token

SOURCE_ENV = "env"
SOURCE_CONFIG = "config"
SOURCE_SHARED = "shared"


class EnvNames:
    """Names of the environment variables the CLI reads."""

    def __init__(
        self,
        token: str = "META_TOKEN",
        app_id: str = "META_APP_ID",
        app_secret: str = "META_APP_SECRET",
        account: str = "META_ADS_ACCOUNT",
    ):
        self.token = token
        self.app_id = app_id
        self.app_secret = app_secret
        self.account = account


DEFAULT_ENV_NAMES = EnvNames()


class Config:
    """Persisted user configuration. An empty access token means logged out."""

    def __init__(
        self,
        access_token: str = "",
        token_type: str = "",
        user_id: str = "",
        user_name: str = "",
        default_account: str = "",
        app_id: str = "",
        app_secret: str = "",
        token_expires_at: Optional[int] = None,
    ):
        self.access_token = access_token
        self.token_type = token_type
        self.user_id = user_id
        self.user_name = user_name
        self.default_account = default_account
        self.app_id = app_id
        self.app_secret = app_secret
        self.token_expires_at = token_expires_at

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def days_until_expiry(self) -> Optional[int]:
        """Whole days until the token expires, negative once expired. None if unknown."""
        if not self.token_expires_at:
            return None
        return int((self.token_expires_at - time.time()) // 86400)

    def serialize(self) -> Dict[str, Any]:
        """Convert to a dictionary for storage"""
        data = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "default_account": self.default_account,
            "app_id": self.app_id,
            "app_secret": self.app_secret,
            "token_expires_at": self.token_expires_at,
        }
        # Optional fields are omitted when empty
        return {k: v for k, v in data.items() if v or k in ("access_token", "user_id", "user_name")}

    @classmethod
    def deserialize(cls, data: Dict[str, Any]) -> "Config":
        """Create from a stored dictionary"""
        expires_at = data.get("token_expires_at")
        return cls(
            access_token=str(data.get("access_token") or ""),
            token_type=str(data.get("token_type") or ""),
            user_id=str(data.get("user_id") or ""),
            user_name=str(data.get("user_name") or ""),
            default_account=str(data.get("default_account") or ""),
            app_id=str(data.get("app_id") or ""),
            app_secret=str(data.get("app_secret") or ""),
            token_expires_at=int(expires_at) if isinstance(expires_at, (int, float)) and expires_at else None,
        )


def default_config_path() -> pathlib.Path:
    return get_config_base_dir() / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def shared_config_path() -> pathlib.Path:
    return get_config_base_dir() / SHARED_CONFIG_DIR_NAME / CONFIG_FILE_NAME


class ConfigStore:
    """Reads and writes a JSON config file with owner-only permissions."""

    def __init__(self, path: Optional[pathlib.Path] = None):
        self.path = pathlib.Path(path) if path else default_config_path()

    def load(self) -> Config:
        """Load the config. A missing file yields an empty Config."""
        if not self.path.exists():
            return Config()
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(str(self.path), str(e)) from e
        if not isinstance(data, dict):
            raise ConfigError(str(self.path), "expected a JSON object")
        return Config.deserialize(data)

    def save(self, config: Config) -> None:
        try:
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            fd = os.open(str(self.path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                json.dump(config.serialize(), f, indent=2)
            # O_CREAT does not change the mode of an existing file
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.error(f"Error saving config to {self.path}: {e}")
            raise ConfigError(str(self.path), f"cannot write: {e}") from e
        logger.info(f"Config saved at: {self.path}")

    def clear(self) -> None:
        try:
            self.path.unlink()
            logger.info(f"Removed config file: {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ConfigError(str(self.path), f"cannot remove: {e}") from e


class Credential:
    """The token chosen for this invocation and where it came from."""

    def __init__(self, token: str, app_secret: str = "", source: str = SOURCE_ENV, config: Optional[Config] = None):
        self.token = token
        self.app_secret = app_secret
        self.source = source
        self.config = config

    @property
    def user_name(self) -> str:
        return self.config.user_name if self.config else ""


def warn_shared_expiry(shared: Config, warn: Callable[[str], None]) -> None:
    days = shared.days_until_expiry()
    if days is None:
        return
    if days < 0:
        warn("warning: meta-auth token has expired - run: meta-auth refresh")
    elif days <= EXPIRY_WARNING_DAYS:
        warn(f"warning: meta-auth token expires in {days} day(s) - run: meta-auth refresh")


def resolve_credential(
    env: Mapping[str, str],
    store: ConfigStore,
    shared_store: Optional[ConfigStore] = None,
    env_names: EnvNames = DEFAULT_ENV_NAMES,
    warn: Callable[[str], None] = print_err,
) -> Credential:
    """Return the first available token in priority order.

    1. the token environment variable
    2. own config file
    3. shared config file written by meta-auth

    Each source falls back to the app secret environment variable when it
    carries no app secret of its own.
    """
    env_secret = env.get(env_names.app_secret, "")

    env_token = env.get(env_names.token, "")
    if env_token:
        logger.debug(f"Using access token from {env_names.token} environment variable")
        return Credential(env_token, env_secret, SOURCE_ENV)

    own = store.load()
    if own.access_token:
        logger.debug(f"Using access token from {store.path}")
        return Credential(own.access_token, own.app_secret or env_secret, SOURCE_CONFIG, own)

    if shared_store is not None:
        shared = shared_store.load()
        if shared.access_token:
            logger.debug(f"Using access token from shared config {shared_store.path}")
            warn_shared_expiry(shared, warn)
            return Credential(shared.access_token, shared.app_secret or env_secret, SOURCE_SHARED, shared)

    raise NotAuthenticatedError()


def resolve_app_credentials(
    env: Mapping[str, str],
    stored: Optional[Config] = None,
    env_names: EnvNames = DEFAULT_ENV_NAMES,
):
    """App ID and secret from the environment, each falling back to the stored config."""
    app_id = env.get(env_names.app_id, "")
    app_secret = env.get(env_names.app_secret, "")
    if stored is not None:
        app_id = app_id or stored.app_id
        app_secret = app_secret or stored.app_secret
    return app_id, app_secret


class Runtime:
    """Per-invocation context handed to every command handler.

    Replaces module-level client and config globals: the environment, config
    stores and client factory are explicit so tests can substitute fakes.
    """

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        env_names: EnvNames = DEFAULT_ENV_NAMES,
        store: Optional[ConfigStore] = None,
        shared_store: Optional[ConfigStore] = None,
        client_factory: Callable[..., MetaClient] = MetaClient,
        warn: Callable[[str], None] = print_err,
    ):
        self.env = env if env is not None else os.environ
        self.env_names = env_names
        self.store = store or ConfigStore()
        self.shared_store = shared_store if shared_store is not None else ConfigStore(shared_config_path())
        self.client_factory = client_factory
        self.warn = warn
        self._config: Optional[Config] = None
        self._credential: Optional[Credential] = None
        self._client: Optional[MetaClient] = None

    @property
    def config(self) -> Config:
        if self._config is None:
            self._config = self.store.load()
        return self._config

    def credential(self) -> Credential:
        if self._credential is None:
            self._credential = resolve_credential(
                self.env, self.store, self.shared_store, self.env_names, self.warn
            )
        return self._credential

    @property
    def client(self) -> MetaClient:
        if self._client is None:
            credential = self.credential()
            self._client = self.client_factory(credential.token, credential.app_secret)
        return self._client

    def app_credentials(self):
        return resolve_app_credentials(self.env, self.config, self.env_names)

    def resolve_account(self, flag: Optional[str] = None) -> str:
        """--account flag > account environment variable > stored default account."""
        if flag:
            return normalize_account_id(flag)
        env_account = self.env.get(self.env_names.account, "")
        if env_account:
            return normalize_account_id(env_account)
        if self.config.default_account:
            return normalize_account_id(self.config.default_account)
        raise UsageError(
            f"no account specified - use --account, set {self.env_names.account}, "
            "or set a default with: meta-ads accounts set-default <id>"
        )
