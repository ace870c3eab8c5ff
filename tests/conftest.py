"""
Pytest configuration file.

Sets up the Python path so test files can import from the python/ directory,
and provides an in-memory token client shared by the authenticator and
keychain tests.
"""
import base64
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add python directory to path for all tests
_python_dir = Path(__file__).parent.parent / 'python'
_python_dir_abs = str(_python_dir.absolute())
if _python_dir_abs not in sys.path:
    sys.path.insert(0, _python_dir_abs)

from ecr_keychain.token_client import AuthorizationData, TokenResponse  # noqa: E402


def encode_token(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


def make_response(token: str = "AWS:secret", expires_in: timedelta = timedelta(hours=12),
                  encode: bool = True) -> TokenResponse:
    """Factory for a single-entry TokenResponse"""
    return TokenResponse(
        authorization_data=[
            AuthorizationData(
                token=encode_token(token) if encode else token,
                expires_at=datetime.now(timezone.utc) + expires_in,
                proxy_endpoint="https://123456789012.dkr.ecr.us-west-2.amazonaws.com",
            )
        ]
    )


class FakeTokenClient:
    """In-memory TokenClient returning queued responses (or raising queued errors)"""

    def __init__(self, *responses, region: str = "us-west-2", fips: bool = False):
        self.region = region
        self.fips = fips
        self.responses = list(responses)
        self.calls = 0

    def fetch_authorization_token(self) -> TokenResponse:
        self.calls += 1
        result = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def fake_client():
    return FakeTokenClient(make_response())
