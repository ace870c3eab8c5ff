"""
Error message utilities for providing actionable guidance to users.

This module defines the exceptions raised while resolving ECR credentials
and the helpers that build them with suggested fixes and troubleshooting
steps.
"""

from typing import List, Optional, Dict, Any
from enum import Enum


class ErrorCategory(Enum):
    """Categories of errors for better error handling"""
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    PERMISSION = "permission"
    NETWORK = "network"
    RESPONSE = "response"
    UNKNOWN = "unknown"


class ActionableError(Exception):
    """Exception with actionable guidance for users"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize actionable error

        Args:
            message: Primary error message
            category: Error category for classification
            suggestions: List of suggested fixes
            details: Additional context information
        """
        self.message = message
        self.category = category
        self.suggestions = suggestions or []
        self.details = details or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message with suggestions"""
        lines = [f"❌ {self.message}"]

        if self.suggestions:
            lines.append("\n💡 Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        if self.details:
            lines.append("\n📋 Additional details:")
            for key, value in self.details.items():
                lines.append(f"   {key}: {value}")

        return "\n".join(lines)


class FetchError(ActionableError):
    """The ECR GetAuthorizationToken call failed (network, credentials, IAM)."""


class MalformedResponseError(ActionableError):
    """ECR returned an authorization token that cannot be used.

    Retrying will not help, the response itself is structurally wrong.
    """


class KeychainSetupError(ActionableError):
    """The default AWS configuration needed to build a keychain is unavailable."""


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""


_ACCESS_DENIED_CODES = ("AccessDenied", "AccessDeniedException", "UnauthorizedOperation")
_CREDENTIAL_ERROR_CODES = (
    "UnrecognizedClientException",
    "InvalidSignatureException",
    "ExpiredTokenException",
    "InvalidClientTokenId",
)


def _error_code(error: Exception) -> Optional[str]:
    """Return the AWS error code of a botocore ClientError, if any."""
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code")
    return None


def create_fetch_error(region: str, fips: bool, error: Exception) -> FetchError:
    """Create actionable error for a failed ECR GetAuthorizationToken call"""
    error_str = str(error).lower()
    code = _error_code(error)

    category = ErrorCategory.AUTHENTICATION
    suggestions = [
        "Verify AWS credentials are configured (aws configure, AWS_PROFILE or an instance role)",
        f"Run 'aws ecr get-login-password --region {region}' to test ECR authentication",
        "Check that the credentials have not expired",
    ]

    if code in _ACCESS_DENIED_CODES or "access denied" in error_str or "not authorized" in error_str:
        category = ErrorCategory.PERMISSION
        suggestions.insert(0, "Check the IAM policy allows ecr:GetAuthorizationToken")
    elif code in _CREDENTIAL_ERROR_CODES or "credentials" in error_str:
        suggestions.insert(0, "Refresh or reconfigure the AWS credentials in use")
    elif "timeout" in error_str or "timed out" in error_str or "connect" in error_str or "endpoint" in error_str:
        category = ErrorCategory.NETWORK
        suggestions.insert(0, f"Check network connectivity to the ECR API endpoint in {region}")
        if fips:
            suggestions.insert(1, f"Verify a FIPS endpoint exists for ECR in {region}")

    return FetchError(
        message=f"ECR GetAuthorizationToken failed in region {region}",
        category=category,
        suggestions=suggestions,
        details={
            "region": region,
            "fips": fips,
            "error_code": code or "n/a",
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def create_malformed_response_error(region: str, reason: str) -> MalformedResponseError:
    """Create actionable error for an unusable GetAuthorizationToken response"""
    return MalformedResponseError(
        message=f"ECR GetAuthorizationToken returned an invalid response in region {region}: {reason}",
        category=ErrorCategory.RESPONSE,
        suggestions=[
            "This is not a transient failure, retrying will return the same response",
            "Check whether a proxy or endpoint override is rewriting ECR API responses",
        ],
        details={"region": region, "reason": reason},
    )


def create_setup_error(error: Exception, profile: Optional[str] = None) -> KeychainSetupError:
    """Create actionable error for failing to load the default AWS configuration"""
    suggestions = [
        "Configure AWS credentials: aws configure",
        "Or set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY environment variables",
        "When running on AWS, verify an instance profile or task role is attached",
    ]

    if profile:
        suggestions.insert(0, f"Verify the AWS profile '{profile}' exists in ~/.aws/config")

    return KeychainSetupError(
        message="Unable to load the default AWS configuration",
        category=ErrorCategory.CONFIGURATION,
        suggestions=suggestions,
        details={
            "profile": profile or "default",
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def create_config_error(field: str, value: Any, reason: str) -> ActionableError:
    """Create actionable error for configuration validation failures"""
    suggestions = [
        f"Check the '{field}' value in config.yaml",
        "Verify the value matches the expected format",
        "Check the environment variable overrides (ECR_*)",
    ]

    if "timeout" in field.lower() or "expiry" in field.lower():
        suggestions.insert(1, "Time values must be positive numbers of seconds")

    return ActionableError(
        message=f"Configuration error: Invalid value for '{field}'",
        category=ErrorCategory.CONFIGURATION,
        suggestions=suggestions,
        details={
            "field": field,
            "value": value,
            "reason": reason,
        },
    )
