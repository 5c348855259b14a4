"""Core framework components for VulnWatch: configuration, logging and errors."""

from .config import ConfigManager, ConfigValidator, TrackerConfig
from .logger import LoggerManager

__all__ = ['ConfigManager', 'ConfigValidator', 'TrackerConfig', 'LoggerManager']
