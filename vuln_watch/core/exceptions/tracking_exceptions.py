"""Exceptions raised while reconciling scan state.

Everything in this module is recovered inside the engine: the channel
reconnects, unknown statuses fall back to pending and out-of-order events
are dropped. They exist so the recovery can be logged with full context.
"""

from typing import Any, Optional
from .base_exceptions import VulnWatchError


class TrackingError(VulnWatchError):
    """Base class for scan tracking errors."""
    
    def __init__(self, message: str, scan_id: Optional[str] = None, **kwargs):
        details = kwargs.get('details', {})
        if scan_id:
            details['scan_id'] = scan_id
        
        kwargs['details'] = details
        kwargs['error_code'] = kwargs.get('error_code', 'TRACKING_ERROR')
        
        super().__init__(message, **kwargs)
        
        self.scan_id = scan_id


class ChannelError(TrackingError):
    """Transport failure on the push channel."""
    
    def __init__(self, reason: str, stream_id: Optional[str] = None, **kwargs):
        """Initialize channel error.
        
        Args:
            reason: Description of the transport failure
            stream_id: Stream the channel was subscribed to
            **kwargs: Additional arguments for base class
        """
        message = f"Channel failure: {reason}"
        
        details = kwargs.get('details', {})
        details['reason'] = reason
        if stream_id:
            details['stream_id'] = stream_id
        
        kwargs['details'] = details
        kwargs['error_code'] = 'CHANNEL_ERROR'
        kwargs['suggestion'] = 'The channel reconnects automatically; check the push endpoint if this persists'
        
        super().__init__(message, **kwargs)
        
        self.reason = reason
        self.stream_id = stream_id


class UnknownStatusError(TrackingError):
    """Server reported a status outside the known vocabulary."""
    
    def __init__(self, raw_status: Any, **kwargs):
        message = f"Unknown scan status: {raw_status!r}"
        
        details = kwargs.get('details', {})
        details['raw_status'] = repr(raw_status)
        
        kwargs['details'] = details
        kwargs['error_code'] = 'UNKNOWN_STATUS'
        
        super().__init__(message, **kwargs)
        
        self.raw_status = raw_status


class OutOfOrderEventError(TrackingError):
    """Channel event would regress the tracked view."""
    
    def __init__(self, scan_id: str, reason: str, **kwargs):
        """Initialize out-of-order event error.
        
        Args:
            scan_id: Scan the event was addressed to
            reason: Why the event was rejected
            **kwargs: Additional arguments for base class
        """
        message = f"Out-of-order event for scan '{scan_id}': {reason}"
        
        details = kwargs.get('details', {})
        details['reason'] = reason
        
        kwargs['details'] = details
        kwargs['error_code'] = 'OUT_OF_ORDER_EVENT'
        
        super().__init__(message, scan_id=scan_id, **kwargs)
        
        self.reason = reason
