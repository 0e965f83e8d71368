# -*- coding: utf-8 -*-
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Dict, Any, List

# Use tomllib if available (Python 3.11+), otherwise fall back to tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .modules.evaluator import DEFAULT_CRITICAL_RATIO, DEFAULT_WARNING_RATIO, Thresholds

log_cfg = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "thresholds": {
        "warning": DEFAULT_WARNING_RATIO,
        "critical": DEFAULT_CRITICAL_RATIO,
    },
    "inspection": {
        "proc_root": "/proc",
        "max_workers": 8,
        "include_system": True,
    },
    "output": {
        "format": "rich",
        "only_problems": False,
    },
}

# Default configuration file search paths
DEFAULT_CONFIG_FILES: List[Path] = [
    Path("/etc/plafond/config.toml"),
    Path(os.path.expanduser("~/.config/plafond/config.toml")),
]


def _merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merges override dict into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = _merge_configs(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path_override: Optional[Path] = None) -> Dict[str, Any]:
    """
    Loads configuration, merging defaults, system, user, and override files.

    Args:
        config_path_override: A specific config file path to load, bypassing
                              default search paths if provided.

    Returns:
        The final merged configuration dictionary.
    """
    config = _merge_configs(DEFAULT_CONFIG, {})

    if config_path_override:
        if config_path_override.is_file():
            log_cfg.info(f"Using specified config file: {config_path_override}")
            files_to_load = [config_path_override]
        else:
            log_cfg.error(f"Specified config file not found: {config_path_override}. Using defaults.")
            return config
    else:
        files_to_load = DEFAULT_CONFIG_FILES

    loaded_files_log: List[str] = []
    for config_file in files_to_load:
        if not config_file.is_file():
            log_cfg.debug(f"Default configuration file not found, skipping: {config_file}")
            continue

        log_cfg.info(f"Loading configuration from: {config_file}")
        try:
            with open(config_file, "rb") as f:
                file_config = tomllib.load(f)
            config = _merge_configs(config, file_config)
            loaded_files_log.append(str(config_file))
        except tomllib.TOMLDecodeError as e:
            log_cfg.error(f"Error parsing configuration file {config_file}: {e}")
        except OSError as e:
            log_cfg.error(f"Error reading configuration file {config_file}: {e}")

    if loaded_files_log:
        log_cfg.info(f"Configuration loaded and merged from: {', '.join(loaded_files_log)}")
    elif not config_path_override:
        log_cfg.info("No default configuration files found. Using default settings.")

    log_cfg.debug(f"Final configuration loaded: {config}")
    return config


def get_thresholds(config: Dict[str, Any]) -> Thresholds:
    """Builds evaluator thresholds from config, falling back to defaults when invalid."""
    section = config.get("thresholds", {})
    try:
        warning = float(section.get("warning", DEFAULT_WARNING_RATIO))
        critical = float(section.get("critical", DEFAULT_CRITICAL_RATIO))
    except (TypeError, ValueError) as e:
        log_cfg.error(f"Invalid threshold values in configuration ({e}). Using defaults.")
        return Thresholds()
    if not 0 < warning <= critical:
        log_cfg.error(
            f"Thresholds must satisfy 0 < warning <= critical (got warning={warning}, "
            f"critical={critical}). Using defaults."
        )
        return Thresholds()
    return Thresholds(warning=warning, critical=critical)


def get_max_workers(config: Dict[str, Any]) -> int:
    value = config.get("inspection", {}).get(
        "max_workers", DEFAULT_CONFIG["inspection"]["max_workers"]
    )
    try:
        workers = int(value)
    except (TypeError, ValueError):
        log_cfg.error(f"Invalid max_workers {value!r} in configuration. Using default.")
        return DEFAULT_CONFIG["inspection"]["max_workers"]
    return max(1, workers)
