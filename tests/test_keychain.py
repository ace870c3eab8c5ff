"""Unit tests for ecr_keychain/keychain.py"""

import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from botocore.config import Config
from botocore.exceptions import ProfileNotFound

from conftest import encode_token
from ecr_keychain.authenticator import DEFAULT_EARLY_EXPIRY, EcrAuthenticator
from ecr_keychain.authn import ANONYMOUS, AuthConfig
from ecr_keychain.config_manager import ConfigManager
from ecr_keychain.error_utils import KeychainSetupError
from ecr_keychain.keychain import (
    EcrKeychain,
    cache_key,
    default_keychain,
    keychain_from_config,
    must_default_keychain,
    new_keychain,
)

REGISTRY = "123456789012.dkr.ecr.us-west-2.amazonaws.com"


def _mock_session():
    """boto3 session mock whose ECR clients return a valid token"""
    ecr_client = MagicMock()
    ecr_client.get_authorization_token.return_value = {
        "authorizationData": [
            {
                "authorizationToken": encode_token("AWS:password"),
                "expiresAt": datetime.now(timezone.utc) + timedelta(hours=12),
            }
        ]
    }
    session = MagicMock()
    session.client.return_value = ecr_client
    return session


class ImageReference:
    """Resource implementation as a registry client would pass it"""

    def __init__(self, registry: str, repository: str):
        self.registry = registry
        self.repository = repository

    def registry_str(self) -> str:
        return self.registry


class TestResolve:
    """Tests for EcrKeychain.resolve"""

    def test_same_region_shares_authenticator(self):
        """Test that resources in the same region and FIPS mode share one authenticator"""
        keychain = new_keychain(_mock_session())

        first = keychain.resolve(f"{REGISTRY}/app:latest")
        second = keychain.resolve("210987654321.dkr.ecr.us-west-2.amazonaws.com/other:v2")

        assert isinstance(first, EcrAuthenticator)
        assert first is second
        assert len(keychain) == 1

    def test_fips_gets_separate_authenticator(self):
        """Test that FIPS and standard endpoints are cached separately"""
        keychain = new_keychain(_mock_session())

        standard = keychain.resolve(REGISTRY)
        fips = keychain.resolve("123456789012.dkr.ecr-fips.us-west-2.amazonaws.com")

        assert standard is not fips
        assert fips.client.fips is True
        assert len(keychain) == 2

    def test_regions_get_separate_authenticators(self):
        """Test that each region has its own authenticator"""
        keychain = new_keychain(_mock_session())

        west = keychain.resolve(REGISTRY)
        east = keychain.resolve("123456789012.dkr.ecr.us-east-1.amazonaws.com")

        assert west is not east
        assert east.client.region == "us-east-1"

    def test_public_registry_uses_us_east_1(self):
        """Test that ECR Public resolves to a us-east-1 authenticator"""
        keychain = new_keychain(_mock_session())

        public = keychain.resolve("public.ecr.aws/nginx/nginx:latest")

        assert public is keychain.resolve("123456789012.dkr.ecr.us-east-1.amazonaws.com")

    @pytest.mark.parametrize("resource", ["ghcr.io/daemonless/app", "docker.io", "quay.io/org/image:tag", ""])
    def test_non_ecr_is_anonymous(self, resource):
        """Test that unrecognized registries resolve to the anonymous authenticator"""
        session = _mock_session()
        keychain = new_keychain(session)

        authenticator = keychain.resolve(resource)

        assert authenticator is ANONYMOUS
        assert authenticator.authorization() == AuthConfig()
        assert len(keychain) == 0
        session.client.assert_not_called()

    def test_accepts_resource_objects(self):
        """Test that objects implementing registry_str() are resolved"""
        keychain = new_keychain(_mock_session())

        authenticator = keychain.resolve(ImageReference(REGISTRY, "app"))

        assert authenticator is keychain.resolve(REGISTRY)

    def test_accepts_https_urls(self):
        """Test that https:// registry URLs are resolved"""
        keychain = new_keychain(_mock_session())
        assert keychain.resolve(f"https://{REGISTRY}/v2/") is keychain.resolve(REGISTRY)

    def test_client_created_on_first_authorization(self):
        """Test that resolving alone never builds a boto3 client"""
        session = _mock_session()
        keychain = new_keychain(session)

        authenticator = keychain.resolve(REGISTRY)
        session.client.assert_not_called()

        assert authenticator.authorization() == AuthConfig(username="AWS", password="password")
        session.client.assert_called_once()
        _, kwargs = session.client.call_args
        assert kwargs["region_name"] == "us-west-2"

    def test_shared_authenticator_fetches_once(self):
        """Test that callers resolving the same endpoint share one token fetch"""
        session = _mock_session()
        keychain = new_keychain(session)

        keychain.resolve(f"{REGISTRY}/a").authorization()
        keychain.resolve(f"{REGISTRY}/b").authorization()

        session.client.return_value.get_authorization_token.assert_called_once_with()

    def test_fips_client_uses_fips_endpoint(self):
        """Test that FIPS authenticators build clients with use_fips_endpoint"""
        session = _mock_session()
        keychain = new_keychain(session, client_config=Config(read_timeout=7))

        keychain.resolve("123456789012.dkr.ecr-fips.us-gov-west-1.amazonaws.com").authorization()

        _, kwargs = session.client.call_args
        assert kwargs["region_name"] == "us-gov-west-1"
        assert kwargs["config"].use_fips_endpoint is True
        assert kwargs["config"].read_timeout == 7

    def test_concurrent_resolve_returns_one_instance(self):
        """Test that concurrent first-time resolves agree on a single authenticator"""
        keychain = new_keychain(_mock_session())

        with ThreadPoolExecutor(max_workers=16) as executor:
            results = list(executor.map(lambda i: keychain.resolve(f"{REGISTRY}/repo-{i}"), range(500)))

        assert len({id(result) for result in results}) == 1
        assert len(keychain) == 1

    def test_racing_insert_wins_over_new_authenticator(self):
        """Test that an authenticator inserted between the miss and the lock is returned"""
        keychain = new_keychain(_mock_session())
        key = cache_key("us-west-2", False)
        rival = EcrAuthenticator(MagicMock(), keychain.early_expiry)
        built = []

        def build_after_rival_insert(token_client, early_expiry):
            # Another caller stores its authenticator while this one is being built
            keychain._cache[key] = rival
            authenticator = EcrAuthenticator(token_client, early_expiry)
            built.append(authenticator)
            return authenticator

        with patch("ecr_keychain.keychain.EcrAuthenticator", side_effect=build_after_rival_insert):
            resolved = keychain.resolve(REGISTRY)

        assert resolved is rival
        assert len(built) == 1 and built[0] is not rival
        assert keychain._cache == {key: rival}
        assert keychain.resolve(f"{REGISTRY}/other") is rival


class TestFactories:
    """Tests for keychain construction"""

    def test_new_keychain_defaults(self):
        """Test default early expiry"""
        keychain = new_keychain(_mock_session())
        assert keychain.early_expiry == DEFAULT_EARLY_EXPIRY
        assert keychain.client_config is None

    def test_new_keychain_custom_early_expiry(self):
        """Test that a custom early expiry reaches the authenticators"""
        keychain = new_keychain(_mock_session(), early_expiry=timedelta(minutes=1))
        assert keychain.resolve(REGISTRY).early_expiry == timedelta(minutes=1)

    def test_cache_key(self):
        assert cache_key("us-west-2", False) == "us-west-2/false"
        assert cache_key("us-west-2", True) == "us-west-2/true"

    def test_default_keychain(self):
        """Test that the default keychain uses the default credential chain"""
        session = _mock_session()
        with patch("boto3.session.Session", return_value=session) as mock_session_cls:
            keychain = default_keychain()

        mock_session_cls.assert_called_once_with(profile_name=None)
        assert isinstance(keychain, EcrKeychain)
        assert keychain.session is session

    def test_default_keychain_returns_fresh_instances(self):
        """Test that there is no hidden process-wide keychain"""
        with patch("boto3.session.Session", return_value=_mock_session()):
            assert default_keychain() is not default_keychain()

    def test_default_keychain_without_credentials(self):
        """Test that missing credentials raise a setup error"""
        session = _mock_session()
        session.get_credentials.return_value = None
        with patch("boto3.session.Session", return_value=session):
            with pytest.raises(KeychainSetupError):
                default_keychain()

    def test_default_keychain_unknown_profile(self):
        """Test that an unknown profile raises a setup error"""
        config_manager = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)
        with patch.dict(os.environ, {"AWS_PROFILE": "missing"}):
            with patch("boto3.session.Session", side_effect=ProfileNotFound(profile="missing")):
                with pytest.raises(KeychainSetupError) as exc_info:
                    default_keychain(config_manager)

        assert exc_info.value.details["profile"] == "missing"
        assert isinstance(exc_info.value.__cause__, ProfileNotFound)

    def test_must_default_keychain_exits(self):
        """Test that the must variant exits the process instead of raising"""
        session = _mock_session()
        session.get_credentials.return_value = None
        with patch("boto3.session.Session", return_value=session):
            with pytest.raises(SystemExit) as exc_info:
                must_default_keychain()

        assert exc_info.value.code == 1

    def test_must_default_keychain_success(self):
        """Test that the must variant returns the keychain when setup succeeds"""
        with patch("boto3.session.Session", return_value=_mock_session()):
            assert isinstance(must_default_keychain(), EcrKeychain)

    def test_keychain_from_config(self):
        """Test that configuration drives profile, early expiry and client config"""
        config_manager = ConfigManager(config_file="/nonexistent/config.yaml", validate=False)
        env = {"AWS_PROFILE": "ci", "ECR_EARLY_EXPIRY": "60", "ECR_READ_TIMEOUT": "5"}
        with patch.dict(os.environ, env):
            with patch("boto3.session.Session", return_value=_mock_session()) as mock_session_cls:
                keychain = keychain_from_config(config_manager)

        mock_session_cls.assert_called_once_with(profile_name="ci")
        assert keychain.early_expiry == timedelta(seconds=60)
        assert keychain.client_config.read_timeout == 5.0
