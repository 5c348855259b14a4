"""Configuration validator for VulnWatch."""

from typing import Dict, Any, List
from urllib.parse import urlparse


VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
SEVERITY_WEIGHT_KEYS = ('high', 'medium', 'low', 'info')


class ConfigValidator:
    """Validates VulnWatch configuration for correctness."""
    
    def __init__(self, config: Dict[str, Any]):
        """Initialize validator with configuration.
        
        Args:
            config: Configuration dictionary to validate
        """
        self.config = config
        self.errors: List[str] = []
    
    def validate(self) -> List[str]:
        """Validate complete configuration.
        
        Returns:
            List of validation error messages
        """
        self.errors = []
        
        self._validate_api_config()
        self._validate_channel_config()
        self._validate_logging_config()
        self._validate_reporting_config()
        
        return self.errors
    
    def _validate_api_config(self) -> None:
        """Validate api configuration section."""
        api = self.config.get('api', {})
        
        base_url = api.get('base_url')
        if not self._validate_url(base_url, ('http', 'https')):
            self.errors.append("api.base_url must be an http(s) URL")
        
        timeout = api.get('timeout', 30)
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
            self.errors.append("api.timeout must be a positive number")
    
    def _validate_channel_config(self) -> None:
        """Validate channel configuration section."""
        channel = self.config.get('channel', {})
        
        ws_url = channel.get('ws_url')
        if ws_url is not None and not self._validate_url(ws_url, ('ws', 'wss')):
            self.errors.append("channel.ws_url must be a ws(s) URL")
        
        if not isinstance(channel.get('reconnect', True), bool):
            self.errors.append("channel.reconnect must be a boolean")
        
        delay = channel.get('reconnect_delay_ms', 3000)
        if not isinstance(delay, int) or isinstance(delay, bool) or delay < 0:
            self.errors.append("channel.reconnect_delay_ms must be a non-negative integer")
        
        backoff = channel.get('reconnect_backoff', 1.0)
        if not isinstance(backoff, (int, float)) or isinstance(backoff, bool) or backoff < 1.0:
            self.errors.append("channel.reconnect_backoff must be a number >= 1.0")
        
        max_delay = channel.get('max_reconnect_delay_ms')
        if max_delay is not None:
            if not isinstance(max_delay, int) or isinstance(max_delay, bool) or max_delay < 0:
                self.errors.append("channel.max_reconnect_delay_ms must be a non-negative integer")
            elif isinstance(delay, int) and max_delay < delay:
                self.errors.append("channel.max_reconnect_delay_ms must not be lower than reconnect_delay_ms")
    
    def _validate_logging_config(self) -> None:
        """Validate logging configuration section."""
        logging_config = self.config.get('logging', {})
        
        level = logging_config.get('level', 'INFO')
        if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
            self.errors.append(f"logging.level must be one of: {list(VALID_LOG_LEVELS)}")
    
    def _validate_reporting_config(self) -> None:
        """Validate reporting configuration section."""
        weights = self.config.get('reporting', {}).get('severity_weights')
        if weights is None:
            return
        
        if not isinstance(weights, dict):
            self.errors.append("reporting.severity_weights must be a mapping")
            return
        
        for key, value in weights.items():
            if key not in SEVERITY_WEIGHT_KEYS:
                self.errors.append(f"Unknown severity weight: {key}")
            elif not isinstance(value, int) or isinstance(value, bool) or value < 0:
                self.errors.append(f"reporting.severity_weights.{key} must be a non-negative integer")
    
    def _validate_url(self, url: Any, schemes: tuple) -> bool:
        """Check that url is a string with one of the given schemes and a host."""
        if not url or not isinstance(url, str):
            return False
        
        parsed = urlparse(url)
        return parsed.scheme in schemes and bool(parsed.netloc)
