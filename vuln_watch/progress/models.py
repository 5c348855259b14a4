"""Core data models for scan lifecycle tracking."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional


def utc_now() -> datetime:
    """Timezone-aware current time used for view timestamps."""
    return datetime.now(timezone.utc)


class ScanStatus(Enum):
    """Canonical scan status."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    
    @property
    def is_terminal(self) -> bool:
        """Whether no further status transition is valid."""
        return self in (ScanStatus.COMPLETED, ScanStatus.FAILED)
    
    @property
    def rank(self) -> int:
        """Position in the lifecycle; both terminal statuses share the last rank."""
        return _STATUS_RANKS[self]


_STATUS_RANKS = {
    ScanStatus.PENDING: 0,
    ScanStatus.IN_PROGRESS: 1,
    ScanStatus.COMPLETED: 2,
    ScanStatus.FAILED: 2,
}


@dataclass(frozen=True)
class ScanView:
    """Authoritative view of one scan as published to subscribers.
    
    Instances are immutable; the store replaces its view on every accepted
    mutation, so a published view can be held on to safely.
    """
    scan_id: str
    url: str = ""
    status: ScanStatus = ScanStatus.PENDING
    progress: int = 0
    updated_at: datetime = field(default_factory=utc_now)
    
    def evolve(self, **changes: Any) -> 'ScanView':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
    
    def same_state(self, other: 'ScanView') -> bool:
        """Compare everything except the timestamp."""
        return (self.scan_id == other.scan_id and self.url == other.url
                and self.status == other.status and self.progress == other.progress)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'scan_id': self.scan_id,
            'url': self.url,
            'status': self.status.value,
            'progress': self.progress,
            'updated_at': self.updated_at.isoformat(),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanView':
        """Create from dictionary produced by to_dict."""
        return cls(
            scan_id=data['scan_id'],
            url=data.get('url', ''),
            status=ScanStatus(data.get('status', ScanStatus.PENDING.value)),
            progress=int(data.get('progress', 0)),
            updated_at=datetime.fromisoformat(data['updated_at']) if data.get('updated_at') else utc_now(),
        )


@dataclass(frozen=True)
class ChannelEvent:
    """Partial update pushed over the channel; None means the field was absent."""
    scan_id: str
    status: Optional[ScanStatus] = None
    progress: Optional[int] = None
    url: Optional[str] = None
    
    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.is_terminal
