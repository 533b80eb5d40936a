"""
Meta Ads CLI - Python Package

This package provides a command-line client for the Meta Marketing API:
browser OAuth login, token management and paginated access to ad accounts,
campaigns, ad sets, ads, audiences, pixels and insights.
"""

__version__ = "1.0.0"

__all__ = [
    'MetaClient',
    'compute_appsecret_proof',
    'Config',
    'ConfigStore',
    'Runtime',
    'resolve_credential',
    'login',
    'set_token',
    'extend_token',
    'validate_token',
    'MetaAdsError',
    'GraphAPIError',
    'main',
]

# Import key objects to make them available at package level
from .core import (
    MetaClient,
    compute_appsecret_proof,
    Config,
    ConfigStore,
    Runtime,
    resolve_credential,
    login,
    set_token,
    extend_token,
    validate_token,
    MetaAdsError,
    GraphAPIError,
    main,
)


# Define a main function to be used as a package entry point
def entrypoint():
    """Main entry point for the package when installed as the meta-ads script."""
    return main()
