"""
Pluggable registry authentication contracts.

A registry client only needs a :class:`Keychain` to turn the resource it is
about to pull or push into an :class:`Authenticator`, and an
:class:`Authenticator` to obtain a username/password pair. Nothing here is
ECR-specific, so any compliant registry client can consume the ECR keychain
without knowing which provider issued the credentials.
"""

from dataclasses import dataclass, field
from typing import Protocol, Union, runtime_checkable


@dataclass(frozen=True)
class AuthConfig:
    """Registry credentials. Empty username and password mean anonymous access."""

    username: str = ""
    password: str = field(default="", repr=False)

    @property
    def is_anonymous(self) -> bool:
        return not self.username and not self.password


@runtime_checkable
class Authenticator(Protocol):
    def authorization(self) -> AuthConfig:
        ...


@runtime_checkable
class Resource(Protocol):
    def registry_str(self) -> str:
        ...


@runtime_checkable
class Keychain(Protocol):
    def resolve(self, resource: Union[Resource, str]) -> Authenticator:
        ...


class AnonymousAuthenticator:
    """Authenticator used when no provider credentials apply."""

    def authorization(self) -> AuthConfig:
        return AuthConfig()

    def __repr__(self) -> str:
        return "ANONYMOUS"


ANONYMOUS = AnonymousAuthenticator()


def registry_str(resource: Union[Resource, str]) -> str:
    """Extract the registry hostname from a resource identifier.

    Args:
        resource: Either an object implementing ``registry_str()`` or a string
            holding a registry host, a URL, or a full image reference such as
            ``123456789012.dkr.ecr.us-west-2.amazonaws.com/app:latest``.

    Returns:
        The registry hostname (including a port, if one was given).
    """
    if not isinstance(resource, str):
        return resource.registry_str()
    for prefix in ("https://", "http://"):
        if resource.startswith(prefix):
            resource = resource[len(prefix):]
            break
    return resource.split("/")[0]
