"""Configuration loader and validator."""

import logging
from pathlib import Path
from typing import Any

import yaml

from quadra.bracket import BracketStrategy
from quadra.group_builder import GROUP_SIZE, validate_cohort_size
from quadra.models import StageFormat
from quadra.validation import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = ".quadra/quadra.sqlite"


class ConfigError(Exception):
    """Configuration validation error."""

    pass


def load_config(path: str) -> dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML config file

    Returns:
        Dictionary with configuration values

    Raises:
        ConfigError: If file not found or invalid YAML
    """
    config_file = Path(path)

    if not config_file.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")

    if config is None:
        raise ConfigError("Config file is empty")

    if not isinstance(config, dict):
        raise ConfigError("Config file must contain a mapping of settings")

    return config


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate configuration values.

    Args:
        config: Configuration dictionary

    Returns:
        Validated and normalized configuration

    Raises:
        ConfigError: If validation fails
    """
    validated = {}

    # Random seed (optional, default 42)
    validated["random_seed"] = config.get("random_seed", 42)
    if not isinstance(validated["random_seed"], int):
        raise ConfigError("random_seed must be an integer")

    # Stage format (optional; when unset the command decides it)
    try:
        validated["format"] = StageFormat(config["format"]) if config.get("format") else None
    except ValueError:
        options = ", ".join(f.value for f in StageFormat)
        raise ConfigError(f"format must be one of: {options}, got '{config.get('format')}'")

    # Group size (optional, only 4 is supported)
    group_size = config.get("group_size", GROUP_SIZE)
    if group_size != GROUP_SIZE:
        raise ConfigError(f"group_size must be {GROUP_SIZE}, got {group_size}")
    validated["group_size"] = group_size

    # Qualifiers per group (optional, default 2)
    validated["qualify_count"] = config.get("qualify_count", 2)
    if (
        not isinstance(validated["qualify_count"], int)
        or not 1 <= validated["qualify_count"] < group_size
    ):
        raise ConfigError(f"qualify_count must be an integer between 1 and {group_size - 1}")

    # Cohort size (optional, checked against the format when given)
    cohort_size = config.get("cohort_size")
    if cohort_size is not None:
        if not isinstance(cohort_size, int):
            raise ConfigError("cohort_size must be an integer")
        try:
            validate_cohort_size(cohort_size, validated["format"] or StageFormat.GROUPED)
        except ValidationError as e:
            raise ConfigError(f"cohort_size: {e}")
    validated["cohort_size"] = cohort_size

    # Bracket strategy (optional, default strongest_paired)
    try:
        validated["bracket_strategy"] = BracketStrategy(
            config.get("bracket_strategy", BracketStrategy.STRONGEST_PAIRED.value)
        )
    except ValueError:
        options = ", ".join(s.value for s in BracketStrategy)
        raise ConfigError(
            f"bracket_strategy must be one of: {options}, got '{config.get('bracket_strategy')}'"
        )

    # Stage counts toward the cross-stage ranking (optional, default true)
    validated["counts_toward_ranking"] = config.get("counts_toward_ranking", True)
    if not isinstance(validated["counts_toward_ranking"], bool):
        raise ConfigError("counts_toward_ranking must be true or false")

    # Seeded entrant ids (optional)
    seeds = config.get("seeds", [])
    if not isinstance(seeds, list):
        raise ConfigError("seeds must be a list of entrant ids")
    validated["seeds"] = [str(s) for s in seeds]

    # Database path (optional)
    validated["database"] = str(config.get("database", DEFAULT_DATABASE))

    unknown = set(config) - set(validated)
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))

    return validated


def load_and_validate_config(path: str) -> dict[str, Any]:
    """Load and validate configuration in one step.

    Args:
        path: Path to YAML config file

    Returns:
        Validated configuration dictionary

    Raises:
        ConfigError: If loading or validation fails
    """
    config = load_config(path)
    return validate_config(config)
