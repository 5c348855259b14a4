"""Configuration management module for VulnWatch."""

from .config_manager import ConfigManager
from .config_validator import ConfigValidator
from .tracker_config import TrackerConfig

__all__ = ['ConfigManager', 'ConfigValidator', 'TrackerConfig']
