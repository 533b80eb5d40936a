"""Core functionality for the Meta Ads CLI package."""

from .api import MetaClient, PageRequest, compute_appsecret_proof, check_rate_limit
from .auth import login, set_token, extend_token, exchange_code, validate_token
from .callback_server import CallbackServer
from .config import Config, ConfigStore, EnvNames, Runtime, resolve_credential
from .exceptions import (
    MetaAdsError,
    TransportError,
    HTTPStatusError,
    GraphAPIError,
    PaginationError,
    AuthFlowError,
    NotAuthenticatedError,
    ConfigError,
    UsageError,
)
from .cli import main

__all__ = [
    'MetaClient',
    'PageRequest',
    'compute_appsecret_proof',
    'check_rate_limit',
    'login',
    'set_token',
    'extend_token',
    'exchange_code',
    'validate_token',
    'CallbackServer',
    'Config',
    'ConfigStore',
    'EnvNames',
    'Runtime',
    'resolve_credential',
    'MetaAdsError',
    'TransportError',
    'HTTPStatusError',
    'GraphAPIError',
    'PaginationError',
    'AuthFlowError',
    'NotAuthenticatedError',
    'ConfigError',
    'UsageError',
    'main',
]
