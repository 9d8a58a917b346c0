"""Configuration management: defaults, TOML loading, and environment overrides.

Usage:
    >>> from registry_ops.config import load_ops_config, OpsConfig
"""

from registry_ops.config.loader import load_ops_config
from registry_ops.config.models import CheckResult, OpsConfig, PollSettings, StatusCount

__all__ = ["load_ops_config", "OpsConfig", "PollSettings", "CheckResult", "StatusCount"]
