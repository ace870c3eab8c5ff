"""
ECR authorization token clients.

The authenticator depends only on the :class:`TokenClient` capability, so a
boto3-backed client and an in-memory fake are interchangeable.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Protocol

from botocore.config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationData:
    """One entry of a GetAuthorizationToken response"""

    token: Optional[str] = field(default=None, repr=False)
    expires_at: Optional[datetime] = None
    proxy_endpoint: Optional[str] = None


@dataclass(frozen=True)
class TokenResponse:
    authorization_data: List[AuthorizationData] = field(default_factory=list)

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> "TokenResponse":
        """Build from the dict returned by boto3's ``get_authorization_token``"""
        entries = response.get("authorizationData") or []
        return cls(
            authorization_data=[
                AuthorizationData(
                    token=entry.get("authorizationToken"),
                    expires_at=entry.get("expiresAt"),
                    proxy_endpoint=entry.get("proxyEndpoint"),
                )
                for entry in entries
            ]
        )


class TokenClient(Protocol):
    region: str
    fips: bool

    def fetch_authorization_token(self) -> TokenResponse:
        ...


def create_ecr_client(session: Any, region: str, fips: bool = False, client_config: Optional[Config] = None) -> Any:
    """Create a boto3 ECR client for one region, using the FIPS endpoint if requested.

    Args:
        session: boto3 Session holding the AWS credential chain
        region: AWS region the client talks to
        fips: Use the FIPS-validated ECR endpoint
        client_config: Optional botocore Config (timeouts, retries) applied to the client

    Returns:
        boto3 ECR client
    """
    config = client_config
    if fips:
        fips_config = Config(use_fips_endpoint=True)
        config = config.merge(fips_config) if config is not None else fips_config
    logger.debug(f"Creating ECR client for region {region} (fips={fips})")
    return session.client("ecr", region_name=region, config=config)


class EcrTokenClient:
    """Fetches ECR authorization tokens for one (region, FIPS) endpoint.

    The boto3 client is built on the first fetch, so an instance that is
    created and then discarded never creates one.
    """

    def __init__(self, client_factory: Callable[[], Any], region: str, fips: bool = False):
        self.region = region
        self.fips = fips
        self._client_factory = client_factory
        self._client = None
        self._client_lock = Lock()

    @classmethod
    def from_boto3_client(cls, ecr_client: Any, fips: bool = False) -> "EcrTokenClient":
        """Wrap an existing boto3 ECR client"""
        return cls(lambda: ecr_client, ecr_client.meta.region_name, fips)

    @property
    def client(self) -> Any:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = self._client_factory()
        return self._client

    def fetch_authorization_token(self) -> TokenResponse:
        """Call GetAuthorizationToken. botocore errors propagate to the caller."""
        response = self.client.get_authorization_token()
        return TokenResponse.from_response(response)

    def __repr__(self) -> str:
        return f"EcrTokenClient(region={self.region!r}, fips={self.fips})"
