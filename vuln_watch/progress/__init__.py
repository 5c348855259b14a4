"""Scan lifecycle tracking: status normalization, push channel and state store."""

from .models import ScanStatus, ScanView, ChannelEvent
from .status_codec import normalize, normalize_or_default, encode
from .phases import ScanPhase, PhaseMapper, phase_for
from .channel import ReconnectingChannel, ChannelHandle, ChannelState
from .store import ScanStateStore, merge_event
from .tracker import ScanTracker, TrackerRegistry

__all__ = [
    # Models
    'ScanStatus',
    'ScanView',
    'ChannelEvent',
    
    # Status vocabulary
    'normalize',
    'normalize_or_default',
    'encode',
    
    # Phases
    'ScanPhase',
    'PhaseMapper',
    'phase_for',
    
    # Core components
    'ReconnectingChannel',
    'ChannelHandle',
    'ChannelState',
    'ScanStateStore',
    'merge_event',
    'ScanTracker',
    'TrackerRegistry',
]
