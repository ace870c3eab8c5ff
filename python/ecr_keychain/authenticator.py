"""
Authenticator for a single ECR endpoint.

Caches the decoded authorization token until shortly before it expires,
reducing round-trips to the ECR API.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from ecr_keychain.authn import AuthConfig
from ecr_keychain.error_utils import create_fetch_error, create_malformed_response_error
from ecr_keychain.token_client import TokenClient

logger = logging.getLogger(__name__)

DEFAULT_EARLY_EXPIRY = timedelta(minutes=15)


@dataclass(frozen=True)
class CachedCredential:
    auth_config: AuthConfig
    expires_at: Optional[datetime]

    def is_valid(self, now: datetime) -> bool:
        return self.expires_at is not None and now < self.expires_at


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    """Treat naive timestamps as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EcrAuthenticator:
    """Authenticator that fetches and caches ECR credentials for one endpoint.

    Reads never take a lock: the cached credential is an immutable snapshot
    that is replaced as a whole. Concurrent callers that all find the cache
    expired may each fetch a token. That is accepted in exchange for the
    lock-free read path; at most a handful of redundant calls happen per
    expiry.
    """

    def __init__(self, client: TokenClient, early_expiry: timedelta = DEFAULT_EARLY_EXPIRY):
        self.client = client
        self.early_expiry = early_expiry
        self._cache: Optional[CachedCredential] = None

    @property
    def cached(self) -> Optional[CachedCredential]:
        return self._cache

    def authorization(self) -> AuthConfig:
        """Return credentials for the endpoint, fetching a new token if needed.

        Raises:
            FetchError: The GetAuthorizationToken call failed
            MalformedResponseError: The response held no usable token
        """
        cached = self._cache
        if cached is not None and cached.is_valid(_utcnow()):
            return cached.auth_config

        region = self.client.region
        try:
            response = self.client.fetch_authorization_token()
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"ECR GetAuthorizationToken failed in region {region}: {e}")
            raise create_fetch_error(region, self.client.fips, e) from e

        if not response.authorization_data:
            raise create_malformed_response_error(region, "no authorization data")

        data = response.authorization_data[0]
        auth_config = self._decode_token(region, data.token)

        expires_at = None
        if data.expires_at is not None:
            expires_at = _as_aware(data.expires_at) - self.early_expiry
        else:
            logger.warning(f"ECR token for region {region} has no expiry; it will not be reused")

        self._cache = CachedCredential(auth_config=auth_config, expires_at=expires_at)
        logger.info(f"Fetched ECR authorization token for region {region} (cached until {expires_at})")
        return auth_config

    @staticmethod
    def _decode_token(region: str, token: Optional[str]) -> AuthConfig:
        """Decode a base64 ``username:password`` token"""
        if not token:
            raise create_malformed_response_error(region, "missing authorization token")
        try:
            decoded = base64.b64decode(token, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise create_malformed_response_error(region, f"invalid token encoding ({e})") from e
        username, sep, password = decoded.partition(":")
        if not sep:
            raise create_malformed_response_error(region, "invalid token, missing ':'")
        return AuthConfig(username=username, password=password)

    def __repr__(self) -> str:
        return f"EcrAuthenticator({self.client!r}, early_expiry={self.early_expiry})"


def new_authenticator(client: TokenClient, early_expiry: Optional[timedelta] = None) -> EcrAuthenticator:
    """Return an EcrAuthenticator, using DEFAULT_EARLY_EXPIRY when early_expiry is None"""
    return EcrAuthenticator(client, DEFAULT_EARLY_EXPIRY if early_expiry is None else early_expiry)
