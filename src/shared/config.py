#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Connection configuration for the tsview backend client
Handles YAML loading of the `api` section, validation, and URL assembly.
"""

import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict
from urllib.parse import urlparse


@dataclass
class ApiConnConfig:
    """Backend connection configuration"""
    base_url: str = "http://localhost:8000"
    api_prefix: str = "/tsapi/v1"
    timeout: int = 10
    upload_timeout: int = 120
    user_agent: str = "tsview/1.0"

    def __post_init__(self):
        """Validate connection parameters"""
        if not self.base_url or not self.base_url.strip():
            raise ValueError("api.base_url cannot be empty")
        parsed = urlparse(self.base_url.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"api.base_url must be an http(s) URL, got: {self.base_url}")
        self.base_url = self.base_url.strip().rstrip("/")
        prefix = (self.api_prefix or "").strip()
        if prefix and not prefix.startswith("/"):
            prefix = "/" + prefix
        self.api_prefix = prefix.rstrip("/")
        if self.timeout <= 0:
            raise ValueError("api.timeout must be positive")
        if self.upload_timeout <= 0:
            raise ValueError("api.upload_timeout must be positive")

    @property
    def root_url(self) -> str:
        return f"{self.base_url}{self.api_prefix}"

    def url(self, path: str) -> str:
        """Absolute endpoint URL for a path like '/datasets'"""
        return f"{self.root_url}/{path.lstrip('/')}"


class ConfigError(Exception):
    """Configuration-related errors"""
    pass


def load_raw_config(config_path: str) -> Dict[str, Any]:
    """
    Load raw configuration from YAML file

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Raw configuration dictionary (empty when the file is empty)

    Raises:
        ConfigError: If file cannot be loaded or parsed
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read {config_path}: {e}")

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ConfigError(f"Configuration must be a YAML mapping, got {type(raw_config)}")

    return raw_config


def build_api_config(section: Dict[str, Any]) -> ApiConnConfig:
    """
    Build ApiConnConfig from the `api` mapping

    Raises:
        ConfigError: If values are missing the right types or fail validation
    """
    if not isinstance(section, dict):
        raise ConfigError("'api' section must be a mapping")
    try:
        return ApiConnConfig(
            base_url=str(section.get("base_url", "http://localhost:8000")),
            api_prefix=str(section.get("api_prefix", "/tsapi/v1") or ""),
            timeout=int(section.get("timeout", 10)),
            upload_timeout=int(section.get("upload_timeout", 120)),
            user_agent=str(section.get("user_agent", "tsview/1.0")),
        )
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Configuration validation failed: {e}")
