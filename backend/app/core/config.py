"""
Application configuration utilities.

This module defines the ``Settings`` class used throughout the service for
environment variables and provides helper functions to load the YAML files
describing tracked part numbers and material groups.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict, List

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER = logging.getLogger(__name__)

# Deployment defaults used when ``material_groups.yaml`` is missing.
DEFAULT_PART_NUMBERS: List[str] = [
    "PP4166-4681P003",
    "PP4166-4681P004",
    "PP4166-4726P003",
    "PP4166-4726P004",
    "PP4166-4731P002",
    "PP4166-7106P001",
    "PP4166-7106P003",
]

DEFAULT_GROUPS: Dict[str, Dict[str, Any]] = {
    "upper-frame": {
        "name": "ｱｯﾊﾟﾌﾚｰﾑ",
        "parts": ["PP4166-4681P003", "PP4166-4681P004"],
    },
    "top-plate": {
        "name": "ﾄｯﾌﾟﾌﾟﾚｰﾄ",
        "parts": ["PP4166-4726P003", "PP4166-4726P004"],
    },
    "middle-frame": {
        "name": "ﾐﾄﾞﾙﾌﾚｰﾑ",
        "parts": ["PP4166-4731P002", "PP4166-7106P001", "PP4166-7106P003"],
    },
}

DEFAULT_ORDER_PREFIX = "LK"
DEFAULT_PART_PREFIX = "PP4166"


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Directory holding material_groups.yaml
    config_dir: str = "configs"

    cors_origins: str = ""
    rate_limit_per_min: int = 120

    # Uploads above this size are rejected with 413
    max_upload_bytes: int = 4 * 1024 * 1024

    # Comma separated login names
    admin_usernames: str = "admin"
    user_usernames: str = "user5313,user5314"


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def split_csv(value: str) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_material_config(config_dir: str | None = None) -> Dict[str, Any]:
    """Return the tracked part numbers, material groups and import prefixes.

    Values absent from ``material_groups.yaml`` fall back to the built-in
    deployment defaults.
    """

    directory = config_dir or os.getenv("CONFIG_DIR") or get_settings().config_dir
    path = os.path.join(directory, "material_groups.yaml")
    config: Dict[str, Any] = {
        "part_numbers": list(DEFAULT_PART_NUMBERS),
        "groups": {key: dict(value) for key, value in DEFAULT_GROUPS.items()},
        "order_prefix": DEFAULT_ORDER_PREFIX,
        "part_prefix": DEFAULT_PART_PREFIX,
    }

    try:
        loaded = load_yaml(path)
    except yaml.YAMLError as exc:
        LOGGER.warning("Unable to parse %s: %s. Using defaults.", path, exc)
        return config

    if not loaded:
        LOGGER.debug("Material group config not found at %s; using defaults.", path)
        return config
    if not isinstance(loaded, dict):
        LOGGER.warning("Material group config at %s is not a mapping; using defaults.", path)
        return config

    for key, value in loaded.items():
        if value is not None:
            config[key] = value
    return config
