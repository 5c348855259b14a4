"""Severity aggregation and risk scoring."""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .models import Severity, SeverityBreakdown, RiskLevel, Vulnerability
from ..core.exceptions import InvalidSeverityError


logger = logging.getLogger(__name__)


MAX_RISK_SCORE = 100

# Informational findings do not contribute to the score
DEFAULT_SEVERITY_WEIGHTS: Dict[Severity, int] = {
    Severity.HIGH: 10,
    Severity.MEDIUM: 5,
    Severity.LOW: 2,
    Severity.INFO: 0,
}

# Lower bound of each band, checked in order; anything below is LOW
RISK_LEVEL_THRESHOLDS: Tuple[Tuple[int, RiskLevel], ...] = (
    (70, RiskLevel.CRITICAL),
    (40, RiskLevel.HIGH),
    (10, RiskLevel.MEDIUM),
)


class VulnerabilityAggregator:
    """Groups findings by severity and turns the counts into a risk score."""
    
    def __init__(self, severity_weights: Optional[Mapping[Severity, int]] = None):
        """Initialize aggregator.
        
        Args:
            severity_weights: Per-severity score weights; missing entries use the defaults
        """
        self.severity_weights = dict(DEFAULT_SEVERITY_WEIGHTS)
        if severity_weights:
            self.severity_weights.update(severity_weights)
    
    @classmethod
    def from_config(cls, config) -> 'VulnerabilityAggregator':
        """Build from the `reporting.severity_weights` section of a ConfigManager."""
        raw_weights = config.get('reporting.severity_weights') or {}
        weights = {Severity(name): int(value) for name, value in raw_weights.items()}
        return cls(weights)
    
    def group(self, vulnerabilities: Iterable[Vulnerability]) -> Dict[Severity, List[Vulnerability]]:
        """Partition findings by severity, keeping their original order.
        
        Raises:
            InvalidSeverityError: If a finding has a missing or unknown severity
        """
        groups: Dict[Severity, List[Vulnerability]] = {severity: [] for severity in Severity}
        
        for vulnerability in vulnerabilities:
            if not isinstance(vulnerability.severity, Severity):
                raise InvalidSeverityError(vulnerability.severity,
                                           vulnerability_id=vulnerability.id or None)
            groups[vulnerability.severity].append(vulnerability)
        
        return groups
    
    def aggregate(self, vulnerabilities: Iterable[Vulnerability]) -> SeverityBreakdown:
        """Count findings per severity.
        
        Raises:
            InvalidSeverityError: If a finding has a missing or unknown severity
        """
        return self.count_groups(self.group(vulnerabilities))

    def count_groups(self, groups: Mapping[Severity, List[Vulnerability]]) -> SeverityBreakdown:
        """Breakdown of already grouped findings."""
        return SeverityBreakdown(**{
            severity.value: len(groups.get(severity, ())) for severity in Severity
        })
    
    def score(self, breakdown: SeverityBreakdown) -> int:
        """Weighted risk score, saturating at MAX_RISK_SCORE."""
        raw_score = sum(
            breakdown.count(severity) * weight
            for severity, weight in self.severity_weights.items()
        )
        if raw_score > MAX_RISK_SCORE:
            logger.debug(f"Risk score {raw_score} capped at {MAX_RISK_SCORE}")
        return max(0, min(MAX_RISK_SCORE, raw_score))
    
    def level(self, score: int) -> RiskLevel:
        """Risk level band for a score."""
        for threshold, risk_level in RISK_LEVEL_THRESHOLDS:
            if score >= threshold:
                return risk_level
        return RiskLevel.LOW
