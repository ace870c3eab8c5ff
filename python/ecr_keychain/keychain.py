"""
Keychain resolving ECR registries to cached authenticators.

One :class:`~ecr_keychain.authenticator.EcrAuthenticator` is shared by every
caller that resolves to the same (region, FIPS) pair, so unrelated pulls from
the same endpoint reuse a single cached token.
"""

import functools
import logging
import sys
from datetime import timedelta
from threading import Lock
from typing import Any, Dict, Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError

from ecr_keychain.authenticator import DEFAULT_EARLY_EXPIRY, EcrAuthenticator
from ecr_keychain.authn import ANONYMOUS, Authenticator, Resource, registry_str
from ecr_keychain.config_manager import ConfigManager
from ecr_keychain.error_utils import KeychainSetupError, create_setup_error
from ecr_keychain.logging_utils import log_exception
from ecr_keychain.parse import parse
from ecr_keychain.token_client import EcrTokenClient, create_ecr_client

logger = logging.getLogger(__name__)


def cache_key(region: str, fips: bool) -> str:
    return f"{region}/{'true' if fips else 'false'}"


class EcrKeychain:
    """Keychain returning an ECR authenticator per (region, FIPS) endpoint.

    Lookups of existing authenticators take no lock. A miss builds the new
    authenticator outside the lock, then inserts it under the lock unless
    another caller got there first, in which case the existing one is
    returned and the new one is dropped. The dropped one never created a
    boto3 client, because token clients create theirs on first use.
    """

    def __init__(self, session: Any, early_expiry: timedelta = DEFAULT_EARLY_EXPIRY,
                 client_config: Optional[Config] = None):
        self.session = session
        self.early_expiry = early_expiry
        self.client_config = client_config
        self._cache: Dict[str, EcrAuthenticator] = {}
        self._cache_lock = Lock()
        # boto3 sessions are not thread safe; clients built from them are
        self._session_lock = Lock()

    def resolve(self, resource: Union[Resource, str]) -> Authenticator:
        """Return the authenticator for resource, or ANONYMOUS if it is not an ECR registry"""
        registry = parse(registry_str(resource))
        if registry is None:
            return ANONYMOUS

        key = cache_key(registry.region, registry.fips)
        authenticator = self._cache.get(key)
        if authenticator is not None:
            return authenticator

        token_client = EcrTokenClient(
            functools.partial(self._create_client, registry.region, registry.fips),
            registry.region,
            registry.fips,
        )
        authenticator = EcrAuthenticator(token_client, self.early_expiry)
        with self._cache_lock:
            existing = self._cache.get(key)
            if existing is not None:
                return existing
            self._cache[key] = authenticator
        logger.debug(f"Created ECR authenticator for {key}")
        return authenticator

    def _create_client(self, region: str, fips: bool) -> Any:
        with self._session_lock:
            return create_ecr_client(self.session, region, fips, self.client_config)

    def __len__(self) -> int:
        return len(self._cache)


def new_keychain(session: Any, early_expiry: Optional[timedelta] = None,
                 client_config: Optional[Config] = None) -> EcrKeychain:
    """Return a new keychain using the given boto3 session.

    Args:
        session: boto3 Session supplying AWS credentials
        early_expiry: Margin subtracted from token expiry (default: DEFAULT_EARLY_EXPIRY)
        client_config: Optional botocore Config for the ECR clients

    Returns:
        EcrKeychain instance
    """
    return EcrKeychain(
        session,
        early_expiry=DEFAULT_EARLY_EXPIRY if early_expiry is None else early_expiry,
        client_config=client_config,
    )


def _load_session(profile: Optional[str]) -> Any:
    """Load a boto3 session from the default credential chain.

    Raises:
        KeychainSetupError: If the profile does not exist or no credentials are found
    """
    try:
        session = boto3.session.Session(profile_name=profile)
        credentials = session.get_credentials()
    except BotoCoreError as e:
        raise create_setup_error(e, profile) from e
    if credentials is None:
        raise create_setup_error(RuntimeError("no AWS credentials found in the default credential chain"), profile)
    return session


def keychain_from_config(config_manager: ConfigManager) -> EcrKeychain:
    """Return a keychain configured from config_manager (profile, timeouts, early expiry)"""
    session = _load_session(config_manager.get_aws_profile())
    return new_keychain(
        session,
        early_expiry=config_manager.get_early_expiry(),
        client_config=config_manager.get_client_config(),
    )


def default_keychain(config_manager: Optional[ConfigManager] = None) -> EcrKeychain:
    """Return a keychain using the default AWS credential chain.

    Every call returns a fresh keychain; callers that want one process-wide
    keychain keep the instance themselves.

    Raises:
        KeychainSetupError: If the default AWS configuration cannot be loaded
    """
    if config_manager is not None:
        return keychain_from_config(config_manager)
    return new_keychain(_load_session(None))


def must_default_keychain(config_manager: Optional[ConfigManager] = None) -> EcrKeychain:
    """Like default_keychain, but logs the error and exits the process on failure."""
    try:
        return default_keychain(config_manager)
    except KeychainSetupError as e:
        log_exception(logger, "Failed to create the default ECR keychain", e)
        sys.exit(1)
