"""Explicit configuration value for scan trackers."""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse, urlunparse

from .config_manager import ConfigManager


@dataclass(frozen=True)
class TrackerConfig:
    """Connection settings handed to a tracker at construction."""
    base_url: str = "http://localhost:4200"
    ws_url: Optional[str] = None
    reconnect: bool = True
    reconnect_delay_ms: int = 3000
    reconnect_backoff: float = 1.0
    max_reconnect_delay_ms: Optional[int] = None
    api_timeout: float = 30.0
    
    @property
    def channel_base_url(self) -> str:
        """Push endpoint base, derived from base_url when not configured."""
        if self.ws_url:
            return self.ws_url.rstrip('/')
        
        parsed = urlparse(self.base_url)
        scheme = 'wss' if parsed.scheme == 'https' else 'ws'
        return urlunparse((scheme, parsed.netloc, parsed.path.rstrip('/'), '', '', ''))
    
    def stream_url(self, stream_id: str) -> str:
        """URL of the push stream for one scan."""
        return f"{self.channel_base_url}/ws/scan/{stream_id}"
    
    @classmethod
    def from_config(cls, config: ConfigManager) -> 'TrackerConfig':
        """Build from a loaded ConfigManager."""
        defaults = cls()
        return cls(
            base_url=config.get('api.base_url', defaults.base_url),
            ws_url=config.get('channel.ws_url', defaults.ws_url),
            reconnect=config.get('channel.reconnect', defaults.reconnect),
            reconnect_delay_ms=config.get('channel.reconnect_delay_ms', defaults.reconnect_delay_ms),
            reconnect_backoff=config.get('channel.reconnect_backoff', defaults.reconnect_backoff),
            max_reconnect_delay_ms=config.get('channel.max_reconnect_delay_ms',
                                              defaults.max_reconnect_delay_ms),
            api_timeout=config.get('api.timeout', defaults.api_timeout),
        )
