"""
Amazon ECR credentials for registry clients.

This package resolves registry hostnames to ECR authenticators:
- Hostname parsing for ECR and ECR Public (all partitions, FIPS endpoints)
- Per-endpoint token caching with an early expiry margin
- A keychain sharing one authenticator per (region, FIPS) pair
"""

__version__ = "0.1.0"

from ecr_keychain.authenticator import DEFAULT_EARLY_EXPIRY, EcrAuthenticator, new_authenticator
from ecr_keychain.authn import ANONYMOUS, AuthConfig, Authenticator, Keychain, Resource, registry_str
from ecr_keychain.error_utils import (
    ActionableError,
    ConfigValidationError,
    FetchError,
    KeychainSetupError,
    MalformedResponseError,
)
from ecr_keychain.keychain import (
    EcrKeychain,
    default_keychain,
    keychain_from_config,
    must_default_keychain,
    new_keychain,
)
from ecr_keychain.parse import ECR_PUBLIC_DOMAIN, Registry, parse
from ecr_keychain.token_client import AuthorizationData, EcrTokenClient, TokenResponse

__all__ = [
    "ANONYMOUS",
    "ActionableError",
    "AuthConfig",
    "Authenticator",
    "AuthorizationData",
    "ConfigValidationError",
    "DEFAULT_EARLY_EXPIRY",
    "ECR_PUBLIC_DOMAIN",
    "EcrAuthenticator",
    "EcrKeychain",
    "EcrTokenClient",
    "FetchError",
    "Keychain",
    "KeychainSetupError",
    "MalformedResponseError",
    "Registry",
    "Resource",
    "TokenResponse",
    "default_keychain",
    "keychain_from_config",
    "must_default_keychain",
    "new_authenticator",
    "new_keychain",
    "parse",
    "registry_str",
]
