"""Load chartrelease.yaml with environment variable substitution."""

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError

from src.config.config_utils import substitute_env_vars
from src.config.models import ChartReleaseConfig

CONFIG_FILE = "chartrelease.yaml"
CONFIG_ENV_VAR = "CHARTRELEASE_CONFIG"


def default_config_path(project_root: Path) -> Path:
    """Config file named by CHARTRELEASE_CONFIG, else chartrelease.yaml in the project root."""
    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return project_root / CONFIG_FILE


def load_config(file_path: Path) -> ChartReleaseConfig:
    """
    Load a YAML config file with environment variable substitution.

    Args:
        file_path: Path to the YAML file

    Returns:
        The validated configuration; all defaults if the file does not exist

    Raises:
        ValueError: If required environment variables are missing, the YAML
                   is malformed, the 'config' key is missing, or validation fails

    YAML Structure Requirements:
        The YAML file must have a top-level 'config:' key containing configuration data.
    """
    if not file_path.exists():
        logger.info(f"No configuration file at {file_path}, using defaults")
        return ChartReleaseConfig()

    logger.debug(f"Loading configuration from {file_path}")
    with open(file_path) as f:
        content = f.read()

    content = substitute_env_vars(content)

    try:
        loaded: dict[str, Any] = yaml.safe_load(content)
        if not loaded:
            raise ValueError("Failed to parse YAML")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    if not isinstance(loaded, dict) or "config" not in loaded:
        raise ValueError("Invalid YAML structure: missing 'config' key")

    try:
        return ChartReleaseConfig(**(loaded["config"] or {}))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
