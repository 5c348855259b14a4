"""Normalization of server payloads into canonical types.

Identifier mapping: a payload's `id` names the resource it describes, so it
is only read as the scan identifier on scan snapshots. Channel events and
reports identify their scan through `scanId` (`scan_id` is accepted as an
alternative spelling). Events without a scan identifier are dropped.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .models import ChannelEvent, ScanView, utc_now
from .status_codec import normalize, normalize_or_default
from ..core.exceptions import UnknownStatusError
from ..reporting.models import ReportPayload, Vulnerability


logger = logging.getLogger(__name__)


def _first(payload: Dict[str, Any], *keys: str) -> Any:
    """Value of the first key present with a non-None value."""
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def parse_progress(value: Any) -> Optional[int]:
    """Coerce a progress value into 0..100; None when absent or unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        progress = int(float(value))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric progress value: {value!r}")
        return None
    return max(0, min(100, progress))


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            logger.warning(f"Ignoring malformed timestamp: {value!r}")
            return None
    else:
        return None
    
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def snapshot_to_view(payload: Dict[str, Any]) -> ScanView:
    """Convert a scan resource payload into a ScanView.
    
    Raises:
        ValueError: If the payload is not an object or carries no scan identifier
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Scan snapshot must be an object, got {type(payload).__name__}")
    
    scan_id = _first(payload, 'id', 'scanId', 'scan_id')
    if scan_id is None:
        raise ValueError("Scan snapshot has no identifier")
    scan_id = str(scan_id)
    
    return ScanView(
        scan_id=scan_id,
        url=payload.get('url') or '',
        status=normalize_or_default(payload.get('status'), scan_id=scan_id),
        progress=parse_progress(payload.get('progress')) or 0,
        updated_at=parse_timestamp(_first(payload, 'updatedAt', 'updated_at', 'createdAt', 'created_at')) or utc_now(),
    )


def payload_to_event(payload: Any) -> Optional[ChannelEvent]:
    """Convert a channel message into a ChannelEvent, or None if unusable."""
    if not isinstance(payload, dict):
        logger.warning(f"Dropping channel message that is not an object: {payload!r}")
        return None
    
    scan_id = _first(payload, 'scanId', 'scan_id')
    if scan_id is None:
        logger.debug(f"Dropping channel message without scan identifier: {payload!r}")
        return None
    scan_id = str(scan_id)
    
    # Unknown statuses are treated as absent so they cannot move a live view
    status = None
    if payload.get('status') is not None:
        try:
            status = normalize(payload['status'])
        except UnknownStatusError as e:
            e.details['scan_id'] = scan_id
            logger.warning(f"{e}; keeping current status", extra={'error': e.to_dict()})
    
    return ChannelEvent(
        scan_id=scan_id,
        status=status,
        progress=parse_progress(payload.get('progress')),
        url=payload.get('url'),
    )


def report_to_payload(scan_id: str, payload: Dict[str, Any]) -> ReportPayload:
    """Convert a report resource into a ReportPayload.
    
    Raises:
        ValueError: If the payload or one of its findings is not an object
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Report must be an object, got {type(payload).__name__}")
    
    raw_vulnerabilities = payload.get('vulnerabilities') or []
    if not isinstance(raw_vulnerabilities, list):
        raise ValueError("Report vulnerabilities must be a list")
    for index, item in enumerate(raw_vulnerabilities):
        if not isinstance(item, dict):
            raise ValueError(f"Vulnerability #{index} must be an object, got {type(item).__name__}")
    
    body = _first(payload, 'rawReportBody', 'reportHtml', 'raw_report_body', 'report_html')
    
    return ReportPayload(
        scan_id=str(_first(payload, 'scanId', 'scan_id') or scan_id),
        vulnerabilities=tuple(Vulnerability.from_dict(item) for item in raw_vulnerabilities),
        raw_report_body=body or '',
    )
