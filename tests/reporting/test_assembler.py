"""Tests for report assembly."""

from dataclasses import FrozenInstanceError

import pytest

from conftest import make_vulnerabilities, make_vulnerability
from vuln_watch.core.exceptions import InconsistentAggregationError, InvalidSeverityError
from vuln_watch.reporting import (
    ReportAssembler, ReportPayload, RiskLevel, Severity, SeverityBreakdown,
    describe_risk, recommend_actions
)


@pytest.fixture
def assembler():
    return ReportAssembler()


@pytest.fixture
def findings():
    return make_vulnerabilities(high=2, medium=1, low=3, info=5)


@pytest.fixture
def payload(findings):
    return ReportPayload(scan_id='scan-1', vulnerabilities=tuple(findings),
                         raw_report_body='<html>report</html>')


class TestReportAssembler:
    """Test ReportAssembler functionality."""
    
    def test_build(self, assembler, payload):
        """Test a payload is aggregated into a report."""
        report = assembler.build(payload)
        
        assert report.scan_id == 'scan-1'
        assert report.breakdown == SeverityBreakdown(high=2, medium=1, low=3, info=5)
        assert report.risk_score == 31
        assert report.risk_level == RiskLevel.MEDIUM
        assert report.raw_report_body == '<html>report</html>'
        assert len(report.vulnerabilities(Severity.LOW)) == 3
    
    def test_assemble_is_deterministic(self, assembler, findings):
        """Test identical inputs give equal reports."""
        groups = assembler.aggregator.group(findings)
        breakdown = assembler.aggregator.count_groups(groups)
        
        first = assembler.assemble('scan-1', breakdown, groups, 'body')
        second = assembler.assemble('scan-1', breakdown, groups, 'body')
        
        assert first.to_dict() == second.to_dict()
    
    def test_missing_groups_treated_as_empty(self, assembler):
        """Test absent severities read as empty."""
        high = [make_vulnerability('v1', Severity.HIGH)]
        
        report = assembler.assemble('scan-1', SeverityBreakdown(high=1), {Severity.HIGH: high}, '')
        
        assert report.vulnerabilities(Severity.MEDIUM) == ()
        assert report.risk_score == 10
    
    def test_total_mismatch(self, assembler, findings):
        """Test a breakdown whose total disagrees is rejected."""
        groups = assembler.aggregator.group(findings)
        
        with pytest.raises(InconsistentAggregationError) as exc_info:
            assembler.assemble('scan-1', SeverityBreakdown(high=3, medium=1, low=3, info=5), groups, '')
        
        assert exc_info.value.expected_total == 12
        assert exc_info.value.actual_total == 11
    
    def test_per_severity_mismatch(self, assembler, findings):
        """Test equal totals with swapped counts are rejected."""
        groups = assembler.aggregator.group(findings)
        
        with pytest.raises(InconsistentAggregationError) as exc_info:
            assembler.assemble('scan-1', SeverityBreakdown(high=1, medium=2, low=3, info=5), groups, '')
        
        assert set(exc_info.value.mismatches) == {'high', 'medium'}
        assert exc_info.value.details['scan_id'] == 'scan-1'
    
    def test_invalid_severity_in_payload(self, assembler):
        """Test reports with unknown severities are not produced."""
        payload = ReportPayload(scan_id='scan-1',
                                vulnerabilities=(make_vulnerability('v1', 'URGENT'),))
        
        with pytest.raises(InvalidSeverityError):
            assembler.build(payload)
    
    def test_report_is_immutable(self, assembler, payload):
        """Test reports cannot be altered after assembly."""
        report = assembler.build(payload)
        
        with pytest.raises(FrozenInstanceError):
            report.risk_score = 0
        with pytest.raises(TypeError):
            report.vulnerabilities_by_severity[Severity.HIGH] = ()
        assert isinstance(report.vulnerabilities(Severity.HIGH), tuple)
    
    def test_summary_and_recommendations(self, assembler, payload):
        """Test the report carries display text."""
        report = assembler.build(payload)
        
        assert report.summary == describe_risk(RiskLevel.MEDIUM)
        assert report.recommendations[0].startswith("Immediately fix the 2 high")
        assert len(report.recommendations) == 4
    
    def test_to_dict(self, assembler, payload):
        """Test JSON export."""
        data = assembler.build(payload).to_dict()
        
        assert data['risk_level'] == 'medium'
        assert data['breakdown']['total'] == 11
        assert len(data['vulnerabilities']['info']) == 5
        assert data['vulnerabilities']['high'][0]['severity'] == 'high'


class TestRecommendations:
    """Test recommended actions."""
    
    def test_clean_scan(self):
        """Test only the general advice is given without findings."""
        assert recommend_actions(SeverityBreakdown()) == [
            "Consult the detailed remediation advice for each vulnerability"
        ]
    
    def test_ordering(self):
        actions = recommend_actions(SeverityBreakdown(medium=1, low=2))
        
        assert actions[0].startswith("Plan the remediation of the 1 medium")
        assert actions[1].startswith("Review the 2 low")
    
    def test_every_level_described(self):
        for level in RiskLevel:
            assert describe_risk(level)
