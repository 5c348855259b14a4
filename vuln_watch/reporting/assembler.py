"""Assembly of the immutable scan report."""

import logging
from typing import Mapping, Optional, Sequence

from .aggregator import VulnerabilityAggregator
from .models import (
    ReportPayload, ScanReport, Severity, SeverityBreakdown, Vulnerability, freeze_groups
)
from .summary import describe_risk, recommend_actions
from ..core.exceptions import InconsistentAggregationError


logger = logging.getLogger(__name__)


class ReportAssembler:
    """Combines aggregated findings with the rendered report body."""
    
    def __init__(self, aggregator: Optional[VulnerabilityAggregator] = None):
        self.aggregator = aggregator or VulnerabilityAggregator()
    
    def assemble(self, scan_id: str, breakdown: SeverityBreakdown,
                 vulnerabilities_by_severity: Mapping[Severity, Sequence[Vulnerability]],
                 raw_report_body: str) -> ScanReport:
        """Build the report for a completed scan.
        
        Deterministic for identical inputs. Severities absent from
        `vulnerabilities_by_severity` are treated as empty.
        
        Args:
            scan_id: Scan the report belongs to
            breakdown: Severity counts produced by the aggregator
            vulnerabilities_by_severity: Findings grouped by severity
            raw_report_body: Rendered report body from the service
            
        Returns:
            Immutable ScanReport
            
        Raises:
            InconsistentAggregationError: If the counts disagree with the groups
        """
        groups = freeze_groups(vulnerabilities_by_severity)
        self._check_consistency(scan_id, breakdown, groups)
        
        risk_score = self.aggregator.score(breakdown)
        risk_level = self.aggregator.level(risk_score)
        
        return ScanReport(
            scan_id=scan_id,
            breakdown=breakdown,
            risk_score=risk_score,
            risk_level=risk_level,
            vulnerabilities_by_severity=groups,
            raw_report_body=raw_report_body,
            summary=describe_risk(risk_level),
            recommendations=tuple(recommend_actions(breakdown)),
        )
    
    def build(self, payload: ReportPayload) -> ScanReport:
        """Aggregate and assemble a fetched report payload.
        
        Raises:
            InvalidSeverityError: If a finding has a missing or unknown severity
            InconsistentAggregationError: If aggregation produced mismatched counts
        """
        groups = self.aggregator.group(payload.vulnerabilities)
        breakdown = self.aggregator.count_groups(groups)
        report = self.assemble(payload.scan_id, breakdown, groups, payload.raw_report_body)
        
        logger.info(f"Report assembled for scan {payload.scan_id}: "
                    f"{breakdown.total} findings, risk {report.risk_score} ({report.risk_level.value})")
        return report
    
    def _check_consistency(self, scan_id: str, breakdown: SeverityBreakdown,
                           groups: Mapping[Severity, Sequence[Vulnerability]]) -> None:
        actual_total = sum(len(items) for items in groups.values())
        mismatches = {
            severity.value: {'expected': breakdown.count(severity), 'actual': len(groups[severity])}
            for severity in Severity
            if breakdown.count(severity) != len(groups[severity])
        }
        
        if breakdown.total != actual_total or mismatches:
            error = InconsistentAggregationError(breakdown.total, actual_total, mismatches,
                                                 details={'scan_id': scan_id})
            logger.error(str(error), extra={'error': error.to_dict()})
            raise error
