"""Display phases derived from scan progress."""

from enum import IntEnum
from typing import Optional


class ScanPhase(IntEnum):
    """Ordered, user-facing scan stages."""
    DISCOVERY = 1
    CONFIGURATION = 2
    DETECTION = 3
    REPORTING = 4
    
    @property
    def title(self) -> str:
        return PHASE_TITLES[self]
    
    @property
    def message(self) -> str:
        return PHASE_MESSAGES[self]


PHASE_TITLES = {
    ScanPhase.DISCOVERY: "Crawling",
    ScanPhase.CONFIGURATION: "Configuration",
    ScanPhase.DETECTION: "Detection",
    ScanPhase.REPORTING: "Reporting",
}

PHASE_MESSAGES = {
    ScanPhase.DISCOVERY: "Crawling the website and discovering pages...",
    ScanPhase.CONFIGURATION: "Analysing security headers and configuration...",
    ScanPhase.DETECTION: "Detecting vulnerabilities and security flaws...",
    ScanPhase.REPORTING: "Generating the report and recommendations...",
}

# Exclusive upper bound of each phase; progress past the last bound is REPORTING
PHASE_UPPER_BOUNDS = (
    (25, ScanPhase.DISCOVERY),
    (50, ScanPhase.CONFIGURATION),
    (75, ScanPhase.DETECTION),
)


def phase_for(progress: int) -> ScanPhase:
    """Phase for a progress percentage; out-of-range values are clamped."""
    progress = max(0, min(100, progress))
    for upper_bound, phase in PHASE_UPPER_BOUNDS:
        if progress < upper_bound:
            return phase
    return ScanPhase.REPORTING


class PhaseMapper:
    """Tracks the displayed phase of one session; it never moves backwards."""
    
    def __init__(self):
        self._current: Optional[ScanPhase] = None
    
    @property
    def current(self) -> Optional[ScanPhase]:
        return self._current
    
    def update(self, progress: int) -> ScanPhase:
        """Advance to the phase for `progress` unless that would regress."""
        phase = phase_for(progress)
        if self._current is None or phase > self._current:
            self._current = phase
        return self._current
    
    def reset(self) -> None:
        self._current = None
