"""Vulnerability aggregation and report assembly."""

from .models import (
    Severity,
    RiskLevel,
    Vulnerability,
    SeverityBreakdown,
    ReportPayload,
    ScanReport,
)
from .aggregator import VulnerabilityAggregator, DEFAULT_SEVERITY_WEIGHTS, MAX_RISK_SCORE
from .assembler import ReportAssembler
from .summary import describe_risk, recommend_actions

__all__ = [
    'Severity',
    'RiskLevel',
    'Vulnerability',
    'SeverityBreakdown',
    'ReportPayload',
    'ScanReport',
    'VulnerabilityAggregator',
    'DEFAULT_SEVERITY_WEIGHTS',
    'MAX_RISK_SCORE',
    'ReportAssembler',
    'describe_risk',
    'recommend_actions',
]
