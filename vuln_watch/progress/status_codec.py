"""Translation between the server status vocabulary and ScanStatus."""

import logging
from typing import Any

from .models import ScanStatus
from ..core.exceptions import UnknownStatusError


logger = logging.getLogger(__name__)


# Server vocabulary; keys are compared after upper-casing and unifying separators
_STATUS_VOCABULARY = {
    'PENDING': ScanStatus.PENDING,
    'QUEUED': ScanStatus.PENDING,
    'IN_PROGRESS': ScanStatus.IN_PROGRESS,
    'RUNNING': ScanStatus.IN_PROGRESS,
    'COMPLETED': ScanStatus.COMPLETED,
    'DONE': ScanStatus.COMPLETED,
    'FAILED': ScanStatus.FAILED,
    'ERROR': ScanStatus.FAILED,
}

_SERVER_NAMES = {
    ScanStatus.PENDING: 'PENDING',
    ScanStatus.IN_PROGRESS: 'IN_PROGRESS',
    ScanStatus.COMPLETED: 'COMPLETED',
    ScanStatus.FAILED: 'FAILED',
}


def normalize(raw_status: Any) -> ScanStatus:
    """Map a raw server status to ScanStatus.
    
    Args:
        raw_status: Status string as sent by the server
        
    Returns:
        Canonical status
        
    Raises:
        UnknownStatusError: If the value is not part of the known vocabulary
    """
    if isinstance(raw_status, ScanStatus):
        return raw_status
    if not isinstance(raw_status, str):
        raise UnknownStatusError(raw_status)
    
    key = raw_status.strip().upper().replace('-', '_').replace(' ', '_')
    try:
        return _STATUS_VOCABULARY[key]
    except KeyError:
        raise UnknownStatusError(raw_status) from None


def normalize_or_default(raw_status: Any, scan_id: str = None) -> ScanStatus:
    """Boundary variant of normalize.
    
    Unknown values are logged and mapped to PENDING; they are never taken as
    a terminal status.
    """
    try:
        return normalize(raw_status)
    except UnknownStatusError as e:
        if scan_id:
            e.details['scan_id'] = scan_id
        logger.warning(f"{e}; treating as pending", extra={'error': e.to_dict()})
        return ScanStatus.PENDING


def encode(status: ScanStatus) -> str:
    """Map ScanStatus back to the server vocabulary."""
    return _SERVER_NAMES[status]
