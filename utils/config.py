"""
Configuration loader with platform-aware override support.

Loads config.yaml from the repository root (or PERFCOMPARE_CONFIG_DIR). If a
platform-specific override exists (config.windows.yaml, config.mac.yaml or
config.linux.yaml), its values take precedence. Missing keys fall back to
the defaults below.
"""

import os
import platform
from pathlib import Path
from typing import Dict

import yaml
from dotenv import load_dotenv

from utils.comparison_analyzer import CRITICAL_THRESHOLD_PCT, WARNING_THRESHOLD_PCT
from utils.grouping import DEFAULT_SUBJECT_DELIMITER
from utils.statistical_analyzer import DEFAULT_TOP_N


def _get_config_dir() -> Path:
    """
    Determine the directory holding the YAML files.

    Priority:
    1. PERFCOMPARE_CONFIG_DIR environment variable
    2. Repository root (parent of utils/)
    """
    env_dir = os.environ.get("PERFCOMPARE_CONFIG_DIR")
    if env_dir:
        return Path(env_dir)
    return Path(__file__).resolve().parent.parent


def _load_yaml(path: Path) -> Dict:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing '{path.name}': {e}")


def load_config() -> Dict:
    """
    Load configuration from config.yaml with optional platform overrides.

    Returns:
        dict: Merged configuration with defaults applied.

    Raises:
        ValueError: If a file cannot be parsed or a value is out of range.
    """
    load_dotenv()
    config_dir = _get_config_dir()
    config: Dict = {}

    base_config_path = config_dir / "config.yaml"
    if base_config_path.exists():
        config = _load_yaml(base_config_path)

    platform_map = {
        "Windows": "config.windows.yaml",
        "Darwin": "config.mac.yaml",
        "Linux": "config.linux.yaml",
    }
    platform_file = platform_map.get(platform.system())
    if platform_file:
        platform_path = config_dir / platform_file
        if platform_path.exists():
            config = _deep_merge(config, _load_yaml(platform_path))

    # Set defaults
    general = config.setdefault("general", {})
    compare_cfg = config.setdefault("perf_compare", {})
    severity = compare_cfg.setdefault("severity", {})
    config.setdefault("logging", {}).setdefault("log_level", "INFO")

    compare_cfg.setdefault("subject_delimiter", DEFAULT_SUBJECT_DELIMITER)
    compare_cfg.setdefault("top_n", DEFAULT_TOP_N)
    severity.setdefault("warning_pct", WARNING_THRESHOLD_PCT)
    severity.setdefault("critical_pct", CRITICAL_THRESHOLD_PCT)

    # Resolve data path
    env_data_path = os.environ.get("PERFCOMPARE_DATA_PATH")
    if env_data_path:
        general["data_path"] = env_data_path
    elif not general.get("data_path"):
        general["data_path"] = str(config_dir / "data")

    _validate_config(config)
    return config


def _validate_config(config: Dict) -> None:
    compare_cfg = config["perf_compare"]
    severity = compare_cfg["severity"]

    delimiter = compare_cfg["subject_delimiter"]
    if not isinstance(delimiter, str) or not delimiter:
        raise ValueError("'perf_compare.subject_delimiter' must be a non-empty string.")

    top_n = compare_cfg["top_n"]
    if isinstance(top_n, bool) or not isinstance(top_n, int) or top_n <= 0:
        raise ValueError(f"'perf_compare.top_n' must be a positive integer, got: {top_n}")

    warning_pct = severity["warning_pct"]
    critical_pct = severity["critical_pct"]
    for key, value in (("warning_pct", warning_pct), ("critical_pct", critical_pct)):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValueError(
                f"'perf_compare.severity.{key}' must be a non-negative number, got: {value}"
            )
    if warning_pct >= critical_pct:
        raise ValueError(
            "'perf_compare.severity.warning_pct' must be lower than 'critical_pct' "
            f"({warning_pct} >= {critical_pct})."
        )


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries. Override values take precedence.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


if __name__ == '__main__':
    config = load_config()
    print("Loaded configuration:")
    print(config)
