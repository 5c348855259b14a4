"""Human-readable risk summary derived from a severity breakdown."""

from typing import List

from .models import RiskLevel, SeverityBreakdown


RISK_DESCRIPTIONS = {
    RiskLevel.CRITICAL: "Critical vulnerabilities were detected that could lead to a complete compromise of the system.",
    RiskLevel.HIGH: "Significant vulnerabilities were detected that could compromise the security of the site.",
    RiskLevel.MEDIUM: "Medium severity vulnerabilities were detected that should be fixed.",
    RiskLevel.LOW: "Minor vulnerabilities were detected with limited impact on overall security.",
}


def describe_risk(risk_level: RiskLevel) -> str:
    return RISK_DESCRIPTIONS[risk_level]


def recommend_actions(breakdown: SeverityBreakdown) -> List[str]:
    """Recommended actions, most urgent first."""
    actions = []
    if breakdown.high:
        actions.append(f"Immediately fix the {breakdown.high} high severity vulnerabilities")
    if breakdown.medium:
        actions.append(f"Plan the remediation of the {breakdown.medium} medium severity vulnerabilities")
    if breakdown.low:
        actions.append(f"Review the {breakdown.low} low severity vulnerabilities")
    actions.append("Consult the detailed remediation advice for each vulnerability")
    return actions
