"""Core data models for vulnerability reporting."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Any, Mapping, Optional, Tuple


class Severity(Enum):
    """Vulnerability severity levels, most severe first."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"
    
    @classmethod
    def parse(cls, value: Any) -> Optional['Severity']:
        """Parse a server severity value, returning None when unrecognized."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class RiskLevel(Enum):
    """Overall risk levels derived from the risk score."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Vulnerability:
    """A single finding as reported by the scan service.
    
    `severity` holds the raw server value when it could not be parsed so
    that aggregation can reject it instead of silently dropping the finding.
    """
    id: str
    name: str
    severity: Severity
    description: str = ""
    remediation: str = ""
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'severity': self.severity.value if isinstance(self.severity, Severity) else self.severity,
            'remediation': self.remediation,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vulnerability':
        """Create from a server payload."""
        raw_severity = data.get('severity')
        severity = Severity.parse(raw_severity)
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            description=data.get('description', ''),
            severity=severity if severity is not None else raw_severity,
            remediation=data.get('remediation', ''),
        )


@dataclass(frozen=True)
class SeverityBreakdown:
    """Number of findings per severity."""
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0
    
    def __post_init__(self):
        for severity in Severity:
            if getattr(self, severity.value) < 0:
                raise ValueError(f"Severity count for {severity.value} must be >= 0")
    
    @property
    def total(self) -> int:
        return self.high + self.medium + self.low + self.info
    
    def count(self, severity: Severity) -> int:
        """Count for one severity."""
        return getattr(self, severity.value)
    
    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary, including the total."""
        return {
            'high': self.high,
            'medium': self.medium,
            'low': self.low,
            'info': self.info,
            'total': self.total,
        }


@dataclass(frozen=True)
class ReportPayload:
    """Raw report as returned by the scan service, normalized at the boundary."""
    scan_id: str
    vulnerabilities: Tuple[Vulnerability, ...] = ()
    raw_report_body: str = ""


@dataclass(frozen=True)
class ScanReport:
    """Displayed result of a completed scan. Built once, never mutated."""
    scan_id: str
    breakdown: SeverityBreakdown
    risk_score: int
    risk_level: RiskLevel
    vulnerabilities_by_severity: Mapping[Severity, Tuple[Vulnerability, ...]]
    raw_report_body: str
    summary: str = ""
    recommendations: Tuple[str, ...] = field(default_factory=tuple)
    
    def vulnerabilities(self, severity: Severity) -> Tuple[Vulnerability, ...]:
        """Findings of one severity, in the order the service reported them."""
        return self.vulnerabilities_by_severity.get(severity, ())
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON export."""
        return {
            'scan_id': self.scan_id,
            'breakdown': self.breakdown.to_dict(),
            'risk_score': self.risk_score,
            'risk_level': self.risk_level.value,
            'summary': self.summary,
            'recommendations': list(self.recommendations),
            'vulnerabilities': {
                severity.value: [vuln.to_dict() for vuln in self.vulnerabilities(severity)]
                for severity in Severity
            },
            'raw_report_body': self.raw_report_body,
        }


def freeze_groups(groups: Mapping[Severity, List[Vulnerability]]) -> Mapping[Severity, Tuple[Vulnerability, ...]]:
    """Read-only mapping holding every severity, in severity order."""
    return MappingProxyType({
        severity: tuple(groups.get(severity, ()))
        for severity in Severity
    })
