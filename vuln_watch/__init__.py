"""VulnWatch - Scan lifecycle tracking and risk reporting

Follows long-running security scans through a live push channel,
reconciles it with the scan snapshot, and turns the findings of a
completed scan into a severity breakdown and risk score.
"""

__version__ = "1.0.0"
__description__ = "Scan lifecycle tracking and risk reporting"
__license__ = "MIT"

from .core.exceptions import VulnWatchException, VulnWatchError
from .progress import ScanTracker, TrackerRegistry, ScanStatus, ScanView
from .reporting import ScanReport, VulnerabilityAggregator, ReportAssembler

__all__ = [
    'ScanTracker',
    'TrackerRegistry',
    'ScanStatus',
    'ScanView',
    'ScanReport',
    'VulnerabilityAggregator',
    'ReportAssembler',
    'VulnWatchException',
    'VulnWatchError',
    '__version__'
]
