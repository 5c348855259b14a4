"""Errors raised while loading or checking settings."""

from typing import List, Optional
from .base_exceptions import VulnWatchError


class ConfigurationError(VulnWatchError):
    """Settings could not be read or hold an unusable value."""

    def __init__(self, message: str, config_key: Optional[str] = None,
                 source: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Dot-separated key of the offending setting
            source: File or environment variable the setting came from
            **kwargs: Additional arguments for base class
        """
        details = kwargs.pop('details', None) or {}
        if config_key:
            details['config_key'] = config_key
        if source:
            details['source'] = source
        kwargs.setdefault('error_code', 'CONFIG_ERROR')

        super().__init__(message, details=details, **kwargs)

        self.config_key = config_key
        self.source = source


class ConfigValidationError(ConfigurationError):
    """Loaded settings failed validation; every problem is listed."""

    def __init__(self, validation_errors: List[str], source: Optional[str] = None, **kwargs):
        count = len(validation_errors)
        message = f"Invalid configuration ({count} {'error' if count == 1 else 'errors'})"
        if validation_errors:
            message = f"{message}: {validation_errors[0]}"

        details = kwargs.pop('details', None) or {}
        details['validation_errors'] = list(validation_errors)
        kwargs['error_code'] = 'CONFIG_VALIDATION_ERROR'
        kwargs.setdefault('suggestion', 'Fix the listed settings or remove them to fall back to the defaults')

        super().__init__(message, source=source, details=details, **kwargs)

        self.validation_errors = list(validation_errors)
