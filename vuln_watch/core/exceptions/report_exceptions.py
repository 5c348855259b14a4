"""Exceptions raised while building a scan report.

Unlike tracking errors these are surfaced to the caller: a miscounted
severity corrupts the risk score, so no report is produced.
"""

from typing import Any, Dict, Optional
from .base_exceptions import VulnWatchError, VulnWatchCriticalError


class InvalidSeverityError(VulnWatchError):
    """Exception raised when a vulnerability has an unknown or missing severity."""
    
    def __init__(self, severity: Any, vulnerability_id: Optional[str] = None, **kwargs):
        """Initialize invalid severity error.
        
        Args:
            severity: Offending severity value
            vulnerability_id: Identifier of the vulnerability carrying it
            **kwargs: Additional arguments for base class
        """
        message = f"Invalid severity {severity!r}"
        if vulnerability_id:
            message += f" on vulnerability '{vulnerability_id}'"
        
        details = kwargs.get('details', {})
        details['severity'] = repr(severity)
        if vulnerability_id:
            details['vulnerability_id'] = vulnerability_id
        
        kwargs['details'] = details
        kwargs['error_code'] = 'INVALID_SEVERITY'
        kwargs['suggestion'] = 'Severity must be one of HIGH, MEDIUM, LOW or INFO'
        
        super().__init__(message, **kwargs)
        
        self.severity = severity
        self.vulnerability_id = vulnerability_id


class InconsistentAggregationError(VulnWatchCriticalError):
    """Breakdown counts disagree with the grouped vulnerabilities."""
    
    def __init__(self, expected_total: int, actual_total: int,
                 mismatches: Optional[Dict[str, Any]] = None, **kwargs):
        """Initialize inconsistent aggregation error.
        
        Args:
            expected_total: Total recorded in the severity breakdown
            actual_total: Number of grouped vulnerabilities
            mismatches: Per-severity count mismatches
            **kwargs: Additional arguments for base class
        """
        message = (f"Severity breakdown total {expected_total} does not match "
                   f"{actual_total} grouped vulnerabilities")
        if mismatches and expected_total == actual_total:
            message = f"Severity breakdown disagrees with grouped vulnerabilities for {sorted(mismatches)}"
        
        details = kwargs.get('details', {})
        details.update({
            'expected_total': expected_total,
            'actual_total': actual_total,
            'mismatches': mismatches or {},
        })
        
        kwargs['details'] = details
        kwargs['error_code'] = 'INCONSISTENT_AGGREGATION'
        
        super().__init__(message, **kwargs)
        
        self.expected_total = expected_total
        self.actual_total = actual_total
        self.mismatches = mismatches or {}
