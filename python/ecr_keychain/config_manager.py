#!/usr/bin/env python3
"""
Configuration Manager for the ECR keychain

This module handles loading and managing configuration from config.yaml
and environment variables.
"""

import logging
import math
import os
from datetime import timedelta
from typing import Any, Dict, List, Optional

import yaml
from botocore.config import Config

from ecr_keychain.error_utils import ConfigValidationError, create_config_error

RETRY_MODES = ("legacy", "standard", "adaptive")

# Largest number of seconds a timedelta can hold
MAX_SECONDS = timedelta.max.total_seconds()


class ConfigManager:
    """Manages configuration for the ECR keychain"""

    def __init__(self, config_file: str = None, validate: bool = True):
        """Initialize ConfigManager

        Args:
            config_file: Path to configuration YAML file (defaults to config.yaml or ECR_KEYCHAIN_CONFIG_FILE env var)
            validate: If True, validate configuration on initialization
        """
        if config_file is None:
            config_file = os.environ.get("ECR_KEYCHAIN_CONFIG_FILE", "config.yaml")
        self.config_file = config_file
        self.config = self._load_config()

        if validate:
            self.validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file with defaults"""
        default_config = {
            "aws": {"profile": None},
            "auth": {"early_expiry": 900},  # Seconds subtracted from the token expiry
            "client": {
                "connect_timeout": 10,
                "read_timeout": 30,
                "max_attempts": 3,
                "retry_mode": "standard",
            },
            "logging": {"level": "INFO"},
        }

        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, "r") as f:
                    user_config = yaml.safe_load(f) or {}
                if not isinstance(user_config, dict):
                    logging.error(f"Config file {self.config_file} is not a mapping, using defaults")
                    return default_config
                return self._merge_config(default_config, user_config)
            else:
                logging.warning(f"Config file {self.config_file} not found, using defaults")
                return default_config
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Error loading config file: {e}")
            return default_config

    def _merge_config(self, default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge user config with defaults"""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _get_number(self, env_var: str, section: str, key: str, cast=float) -> Any:
        """Read a numeric setting, environment first. Unparseable env values are returned as-is for validation."""
        value = os.environ.get(env_var)
        if value is None:
            return self.config[section][key]
        try:
            return cast(value)
        except ValueError:
            return value

    # AWS configuration
    def get_aws_profile(self) -> Optional[str]:
        """Get AWS profile name from environment or config (None = default chain)"""
        return os.environ.get("AWS_PROFILE") or self.config["aws"].get("profile")

    # Authentication configuration
    def get_early_expiry_seconds(self) -> float:
        return self._get_number("ECR_EARLY_EXPIRY", "auth", "early_expiry")

    def get_early_expiry(self) -> timedelta:
        """Get the safety margin subtracted from token expiry"""
        return timedelta(seconds=self.get_early_expiry_seconds())

    # ECR client configuration
    def get_connect_timeout(self) -> float:
        return self._get_number("ECR_CONNECT_TIMEOUT", "client", "connect_timeout")

    def get_read_timeout(self) -> float:
        return self._get_number("ECR_READ_TIMEOUT", "client", "read_timeout")

    def get_max_attempts(self) -> int:
        return self._get_number("ECR_MAX_ATTEMPTS", "client", "max_attempts", cast=int)

    def get_retry_mode(self) -> str:
        return str(os.environ.get("ECR_RETRY_MODE") or self.config["client"]["retry_mode"])

    def get_client_config(self) -> Config:
        """Get the botocore Config applied to every ECR client"""
        return Config(
            connect_timeout=self.get_connect_timeout(),
            read_timeout=self.get_read_timeout(),
            retries={"max_attempts": self.get_max_attempts(), "mode": self.get_retry_mode()},
        )

    # Logging configuration
    def get_log_level(self) -> str:
        return str(os.environ.get("ECR_LOG_LEVEL") or self.config["logging"]["level"]).upper()

    def validate_config(self) -> None:
        """Validate configuration values

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        errors: List[str] = []
        warnings = []

        early_expiry = self.get_early_expiry_seconds()
        if not self._is_seconds(early_expiry) or early_expiry < 0:
            errors.append(create_config_error("auth.early_expiry", early_expiry, "must be a non-negative number of seconds").message)
        elif early_expiry >= 12 * 3600:
            # ECR tokens are valid for 12 hours
            warnings.append(f"auth.early_expiry ({early_expiry}s) is at least the 12h token lifetime, tokens will never be reused")

        for field, value in (
            ("client.connect_timeout", self.get_connect_timeout()),
            ("client.read_timeout", self.get_read_timeout()),
        ):
            if not self._is_seconds(value) or value <= 0:
                errors.append(create_config_error(field, value, "must be a positive number of seconds").message)

        max_attempts = self.get_max_attempts()
        if not isinstance(max_attempts, int) or isinstance(max_attempts, bool) or max_attempts < 1:
            errors.append(create_config_error("client.max_attempts", max_attempts, "must be a positive integer").message)
        elif max_attempts > 10:
            warnings.append(f"max_attempts is very high ({max_attempts}), token fetches may take a long time to fail")

        retry_mode = self.get_retry_mode()
        if retry_mode not in RETRY_MODES:
            errors.append(create_config_error("client.retry_mode", retry_mode, f"must be one of {', '.join(RETRY_MODES)}").message)

        log_level = self.get_log_level()
        if not isinstance(logging.getLevelName(log_level), int):
            errors.append(create_config_error("logging.level", log_level, "must be a logging level name").message)

        for warning in warnings:
            logging.warning(f"Configuration warning: {warning}")

        if errors:
            error_msg = "Configuration validation failed:\n  " + "\n  ".join(errors)
            logging.error(error_msg)
            raise ConfigValidationError(error_msg)

    @staticmethod
    def _is_number(value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    @classmethod
    def _is_seconds(cls, value: Any) -> bool:
        """A finite number of seconds that fits in a timedelta"""
        return cls._is_number(value) and abs(value) < MAX_SECONDS and math.isfinite(value)

    def print_config(self):
        """Print current configuration"""
        print("Current Configuration:")
        print(f"  AWS Profile: {self.get_aws_profile() or 'default chain'}")
        print(f"  Early Expiry: {self.get_early_expiry_seconds()}s")
        print(f"  Connect Timeout: {self.get_connect_timeout()}s")
        print(f"  Read Timeout: {self.get_read_timeout()}s")
        print(f"  Max Attempts: {self.get_max_attempts()}")
        print(f"  Retry Mode: {self.get_retry_mode()}")
        print(f"  Log Level: {self.get_log_level()}")
