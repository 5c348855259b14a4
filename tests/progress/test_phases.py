"""Tests for progress phase mapping."""

import pytest

from vuln_watch.progress import PhaseMapper, ScanPhase, phase_for


class TestPhaseFor:
    """Test the progress to phase mapping."""
    
    @pytest.mark.parametrize("progress, expected", [
        (0, ScanPhase.DISCOVERY),
        (24, ScanPhase.DISCOVERY),
        (25, ScanPhase.CONFIGURATION),
        (49, ScanPhase.CONFIGURATION),
        (50, ScanPhase.DETECTION),
        (74, ScanPhase.DETECTION),
        (75, ScanPhase.REPORTING),
        (99, ScanPhase.REPORTING),
        (100, ScanPhase.REPORTING),
    ])
    def test_boundaries(self, progress, expected):
        """Test phase boundaries."""
        assert phase_for(progress) == expected
    
    def test_out_of_range_is_clamped(self):
        """Test values outside 0..100 are clamped."""
        assert phase_for(-10) == ScanPhase.DISCOVERY
        assert phase_for(250) == ScanPhase.REPORTING
    
    def test_phase_labels(self):
        """Test each phase has display text."""
        for phase in ScanPhase:
            assert phase.title
            assert phase.message


class TestPhaseMapper:
    """Test per-session phase tracking."""
    
    def test_initial_state(self):
        assert PhaseMapper().current is None
    
    def test_advances(self):
        """Test phases advance with progress."""
        mapper = PhaseMapper()
        
        assert mapper.update(10) == ScanPhase.DISCOVERY
        assert mapper.update(60) == ScanPhase.DETECTION
        assert mapper.current == ScanPhase.DETECTION
    
    def test_never_regresses(self):
        """Test lower progress does not move the phase back."""
        mapper = PhaseMapper()
        mapper.update(80)
        
        assert mapper.update(20) == ScanPhase.REPORTING
    
    def test_reset(self):
        """Test reset starts a new session."""
        mapper = PhaseMapper()
        mapper.update(80)
        mapper.reset()
        
        assert mapper.update(20) == ScanPhase.DISCOVERY
