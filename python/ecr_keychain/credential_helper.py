#!/usr/bin/env python3
"""
Docker credential helper backed by the ECR keychain.

Implements the credential helper protocol used by docker, podman, buildah and
skopeo: the command name is the first argument and the payload is read from
stdin. Credentials are only ever kept in memory, so ``store`` and ``erase``
are not supported and ``list`` is always empty.

``public.ecr.aws`` is answered with the private ECR GetAuthorizationToken
credentials for us-east-1, not with an ECR Public token.

Configure it in ~/.docker/config.json::

    {"credHelpers": {"123456789012.dkr.ecr.us-west-2.amazonaws.com": "ecr-keychain"}}
"""

import argparse
import json
import sys
from typing import Dict, List, Optional

from ecr_keychain import __version__
from ecr_keychain.authn import ANONYMOUS, registry_str
from ecr_keychain.config_manager import ConfigManager
from ecr_keychain.error_utils import ActionableError, ConfigValidationError
from ecr_keychain.keychain import EcrKeychain, keychain_from_config
from ecr_keychain.logging_utils import get_logger, log_exception, setup_logging
from ecr_keychain.parse import parse

CREDENTIALS_NOT_FOUND = "credentials not found in native keychain"
NOT_IMPLEMENTED = "not implemented"


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docker-credential-ecr-keychain",
        description="Docker credential helper for Amazon ECR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print credentials for a registry
  echo 123456789012.dkr.ecr.us-west-2.amazonaws.com | docker-credential-ecr-keychain get

  # Show the effective configuration
  docker-credential-ecr-keychain --config config.yaml config
        """,
    )

    parser.add_argument(
        "command",
        choices=["get", "list", "store", "erase", "version", "config"],
        help="Credential helper command",
    )
    parser.add_argument(
        "--config",
        help="Path to configuration YAML file (default: ECR_KEYCHAIN_CONFIG_FILE or config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging (written to stderr)",
    )

    return parser.parse_args(argv)


def get_credentials(keychain: EcrKeychain, server_url: str) -> Optional[Dict[str, str]]:
    """Resolve server_url and return the helper ``get`` payload, or None for non-ECR registries"""
    authenticator = keychain.resolve(server_url)
    if authenticator is ANONYMOUS:
        return None
    auth = authenticator.authorization()
    return {"ServerURL": server_url, "Username": auth.username, "Secret": auth.password}


def _get(config_manager: ConfigManager) -> int:
    logger = get_logger(__name__)
    server_url = sys.stdin.read().strip()
    if not server_url:
        print("no server URL given on stdin")
        return 1

    # Answer non-ECR registries without touching AWS
    if parse(registry_str(server_url)) is None:
        logger.debug(f"{server_url} is not an ECR registry")
        print(CREDENTIALS_NOT_FOUND)
        return 1

    try:
        keychain = keychain_from_config(config_manager)
        credentials = get_credentials(keychain, server_url)
    except ActionableError as e:
        log_exception(logger, f"Failed to get ECR credentials for {server_url}", e)
        print(e.message)
        return 1

    if credentials is None:
        print(CREDENTIALS_NOT_FOUND)
        return 1
    print(json.dumps(credentials))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)

    if args.command == "version":
        print(__version__)
        return 0
    if args.command == "list":
        print(json.dumps({}))
        return 0
    if args.command in ("store", "erase"):
        sys.stdin.read()
        print(NOT_IMPLEMENTED)
        return 1

    try:
        config_manager = ConfigManager(config_file=args.config)
    except ConfigValidationError as e:
        setup_logging()
        get_logger(__name__).error(str(e))
        return 1
    setup_logging("DEBUG" if args.verbose else config_manager.get_log_level())

    if args.command == "config":
        config_manager.print_config()
        return 0
    return _get(config_manager)


if __name__ == "__main__":
    sys.exit(main())
