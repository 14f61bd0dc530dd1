"""
Configuration loading and validation.

This module handles loading of YAML configuration files and
validates that the scoring policy tables are internally consistent.
"""

import logging
from pathlib import Path
from typing import Dict, Any, List

import yaml

logger = logging.getLogger(__name__)

STAGE_ORDER = ["IDEATION", "BUILDING", "SCALING"]


def load_config(filepath: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        filepath: Path to the YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    logger.info(f"Loading configuration from {filepath}")
    with open(filepath, "r") as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ValueError(f"Configuration file is empty: {filepath}")

    return config


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration and return list of warnings/errors.

    Args:
        config: Configuration dictionary

    Returns:
        List of warning/error messages (empty if valid)
    """
    issues = []

    required_sections = ["global", "statistics", "trust", "compatibility",
                         "cold_start", "matching"]

    for section in required_sections:
        if section not in config:
            issues.append(f"Missing required section: {section}")

    if "statistics" in config:
        confidence = config["statistics"].get("wilson_confidence", 0.95)
        if not 0 < confidence < 1:
            issues.append(f"statistics.wilson_confidence must be in (0, 1), got {confidence}")
        for service, half_life in config["statistics"].get("half_life_days", {}).items():
            if half_life <= 0:
                issues.append(f"Half-life for {service} must be positive, got {half_life}")

    if "trust" in config:
        if config["trust"].get("shrinkage_strength", 10) < 0:
            issues.append("trust.shrinkage_strength must be non-negative")

    # Stage weights must sum to 1 and shift from chemistry to delivery
    if "compatibility" in config:
        stage_weights = config["compatibility"].get("stage_weights", {})
        for stage, w in stage_weights.items():
            total = sum(w.values())
            if abs(total - 1.0) > 0.01:
                issues.append(f"Stage weights for {stage} don't sum to 1: {total}")
        issues.extend(_check_stage_monotonicity(stage_weights))

        baseline = config["compatibility"].get("baseline_weights", {})
        if baseline and abs(sum(baseline.values()) - 1.0) > 0.01:
            issues.append(f"Baseline weights don't sum to 1: {sum(baseline.values())}")

    if "cold_start" in config:
        thresholds = [t["max_interactions"] for t in config["cold_start"].get("tiers", [])
                      if t.get("max_interactions") is not None]
        if thresholds != sorted(thresholds):
            issues.append(f"Cold-start tier thresholds must be increasing: {thresholds}")

    if "global" in config:
        if "log_level" not in config["global"]:
            issues.append("Missing global.log_level")

    return issues


def _check_stage_monotonicity(stage_weights: Dict[str, Dict[str, float]]) -> List[str]:
    """Vision/psych must not grow and skill/trust must not shrink across stages."""
    issues = []
    stages = [s for s in STAGE_ORDER if s in stage_weights]
    for earlier, later in zip(stages, stages[1:]):
        w_early = stage_weights[earlier]
        w_late = stage_weights[later]
        for key in ("vision", "psych"):
            if w_late.get(key, 0) > w_early.get(key, 0):
                issues.append(f"{key} weight increases from {earlier} to {later}")
        for key in ("skill", "trust"):
            if w_late.get(key, 0) < w_early.get(key, 0):
                issues.append(f"{key} weight decreases from {earlier} to {later}")
    return issues


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "compatibility.stage_weights.IDEATION")
        default: Default value if path doesn't exist

    Returns:
        Configuration value or default
    """
    keys = path.split(".")
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value
