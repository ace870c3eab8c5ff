"""
ECR hostname parsing.

Recognizes registry hostnames (and URLs or image references rooted at one)
that belong to Amazon ECR or ECR Public, and extracts the account, region,
FIPS mode and partition DNS suffix from them.
"""

import re
from dataclasses import dataclass
from typing import Optional

ECR_PUBLIC_DOMAIN = "public.ecr.aws"
ECR_PUBLIC_REGION = "us-east-1"

# Partition DNS suffixes: commercial, China, and the government/sovereign partitions
DNS_SUFFIXES = (
    "amazonaws.com",
    "amazonaws.com.cn",
    "sc2s.sgov.gov",
    "c2s.ic.gov",
    "cloud.adc-e.uk",
    "csp.hci.ic.gov",
)

_ECR_DOMAIN_PATTERN = re.compile(
    r"^(\d{12})\.dkr\.ecr(-fips)?\.([a-zA-Z0-9][a-zA-Z0-9_-]*)\."
    + "(" + "|".join(re.escape(suffix) for suffix in DNS_SUFFIXES) + ")"
    + r"(?:/.*)?\Z"
)

_SCHEME = "https://"


@dataclass(frozen=True)
class Registry:
    """Details extracted from a valid ECR hostname."""

    account_id: str
    region: str
    fips: bool = False
    dns_suffix: str = "amazonaws.com"

    @property
    def is_public(self) -> bool:
        return self.dns_suffix == ECR_PUBLIC_DOMAIN

    def __str__(self) -> str:
        """Reconstruct the canonical ECR hostname."""
        if self.is_public:
            return ECR_PUBLIC_DOMAIN
        service = "dkr.ecr-fips" if self.fips else "dkr.ecr"
        return f"{self.account_id}.{service}.{self.region}.{self.dns_suffix}"


def parse(hostname: str) -> Optional[Registry]:
    """Parse an ECR hostname extracting its details.

    Args:
        hostname: Registry hostname, optionally prefixed with ``https://`` and
            followed by a ``/path`` (e.g. a repository and tag).

    Returns:
        The parsed Registry, or None if the hostname is not an ECR registry.
        None is the expected answer for every non-ECR registry, not an error.
    """
    if not hostname:
        return None
    if hostname.startswith(_SCHEME):
        hostname = hostname[len(_SCHEME):]

    if hostname == ECR_PUBLIC_DOMAIN or hostname.startswith(ECR_PUBLIC_DOMAIN + "/"):
        return Registry(account_id="", region=ECR_PUBLIC_REGION, dns_suffix=ECR_PUBLIC_DOMAIN)

    match = _ECR_DOMAIN_PATTERN.match(hostname)
    if match is None:
        return None
    account_id, fips, region, dns_suffix = match.groups()
    return Registry(
        account_id=account_id,
        region=region,
        fips=fips == "-fips",
        dns_suffix=dns_suffix,
    )
