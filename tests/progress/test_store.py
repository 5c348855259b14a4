"""Tests for scan state reconciliation."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from vuln_watch.core.exceptions import OutOfOrderEventError
from vuln_watch.progress import ChannelEvent, ScanStateStore, ScanStatus, ScanView, merge_event


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def event(status=None, progress=None, url=None, scan_id='scan-1'):
    return ChannelEvent(scan_id=scan_id, status=status, progress=progress, url=url)


@pytest.fixture
def store(clock):
    return ScanStateStore('scan-1', clock=clock)


@pytest.fixture
def published(store):
    views = []
    store.subscribe(views.append)
    return views


class TestMergeEvent:
    """Test the pure merge rules."""
    
    def test_present_fields_overwrite(self, pending_view):
        """Test status and progress are taken from the event."""
        merged = merge_event(pending_view, event(ScanStatus.IN_PROGRESS, 40), NOW)
        
        assert merged.status == ScanStatus.IN_PROGRESS
        assert merged.progress == 40
        assert merged.url == pending_view.url
        assert merged.updated_at == NOW
    
    def test_absent_fields_are_kept(self, pending_view):
        """Test partial events leave other fields untouched."""
        running = pending_view.evolve(status=ScanStatus.IN_PROGRESS, progress=20)
        
        merged = merge_event(running, event(progress=30), NOW)
        
        assert merged.status == ScanStatus.IN_PROGRESS
        assert merged.progress == 30
    
    def test_lower_progress_rejected(self, pending_view):
        """Test progress never decreases while running."""
        running = pending_view.evolve(status=ScanStatus.IN_PROGRESS, progress=40)
        
        with pytest.raises(OutOfOrderEventError):
            merge_event(running, event(ScanStatus.IN_PROGRESS, 10), NOW)
    
    def test_no_change_returns_same_view(self, pending_view):
        """Test an event restating the view is a no-op."""
        assert merge_event(pending_view, event(ScanStatus.PENDING, 0), NOW) is pending_view
    
    def test_terminal_transition_may_lower_progress(self, pending_view):
        """Test a failure report overrides progress."""
        running = pending_view.evolve(status=ScanStatus.IN_PROGRESS, progress=60)
        
        merged = merge_event(running, event(ScanStatus.FAILED, 30), NOW)
        
        assert merged.status == ScanStatus.FAILED
        assert merged.progress == 30
    
    def test_completed_forces_full_progress(self, pending_view):
        """Test completion always reads 100%."""
        merged = merge_event(pending_view, event(ScanStatus.COMPLETED), NOW)
        
        assert merged.progress == 100
    
    @pytest.mark.parametrize("terminal", [ScanStatus.COMPLETED, ScanStatus.FAILED])
    @pytest.mark.parametrize("later", [ScanStatus.PENDING, ScanStatus.IN_PROGRESS])
    def test_terminal_is_sticky(self, pending_view, terminal, later):
        """Test nothing leaves a terminal status."""
        done = pending_view.evolve(status=terminal, progress=100)
        
        with pytest.raises(OutOfOrderEventError):
            merge_event(done, event(later, 100), NOW)
    
    def test_terminal_cannot_switch(self, pending_view):
        """Test a completed scan cannot become failed."""
        done = pending_view.evolve(status=ScanStatus.COMPLETED, progress=100)
        
        with pytest.raises(OutOfOrderEventError):
            merge_event(done, event(ScanStatus.FAILED), NOW)
    
    def test_url_update(self, pending_view):
        """Test a non-empty url replaces the current one."""
        merged = merge_event(pending_view, event(url='https://other.example.com'), NOW)
        
        assert merged.url == 'https://other.example.com'
    
    def test_status_cannot_move_back(self, pending_view):
        """Test a running scan cannot return to pending, even with more progress."""
        running = pending_view.evolve(status=ScanStatus.IN_PROGRESS, progress=40)
        
        with pytest.raises(OutOfOrderEventError):
            merge_event(running, event(ScanStatus.PENDING), NOW)
        with pytest.raises(OutOfOrderEventError):
            merge_event(running, event(ScanStatus.PENDING, 60), NOW)
    
    def test_status_ranks(self):
        """Test lifecycle ordering with both terminal statuses last."""
        assert ScanStatus.PENDING.rank < ScanStatus.IN_PROGRESS.rank < ScanStatus.COMPLETED.rank
        assert ScanStatus.COMPLETED.rank == ScanStatus.FAILED.rank


class TestScanStateStore:
    """Test the store's publication behaviour."""
    
    def test_seed_publishes(self, store, published, pending_view):
        """Test the first snapshot becomes the view."""
        assert store.seed(pending_view) is True
        
        assert store.current_view is pending_view
        assert published == [pending_view]
        assert store.is_seeded
    
    def test_seed_completed_forces_full_progress(self, store, pending_view):
        """Test a completed snapshot reads 100%."""
        store.seed(pending_view.evolve(status=ScanStatus.COMPLETED, progress=90))
        
        assert store.current_view.progress == 100
    
    def test_seed_for_other_scan_ignored(self, store, published, pending_view):
        """Test snapshots of another scan are ignored."""
        assert store.seed(pending_view.evolve(scan_id='scan-2')) is False
        
        assert store.current_view is None
        assert published == []
    
    def test_stale_reseed_ignored(self, store, published, pending_view):
        """Test an older snapshot does not replace live state."""
        store.seed(pending_view)
        store.apply_event(event(ScanStatus.IN_PROGRESS, 50))
        
        stale = pending_view.evolve(status=ScanStatus.IN_PROGRESS, progress=70)
        
        assert store.seed(stale) is False
        assert store.current_view.progress == 50
    
    def test_newer_reseed_merged(self, store, pending_view):
        """Test a newer snapshot goes through the merge rules."""
        store.seed(pending_view)
        store.apply_event(event(ScanStatus.IN_PROGRESS, 50))
        
        newer = pending_view.evolve(status=ScanStatus.IN_PROGRESS, progress=70,
                                    updated_at=datetime(2030, 1, 1, tzinfo=timezone.utc))
        
        assert store.seed(newer) is True
        assert store.current_view.progress == 70
    
    def test_late_seed_does_not_regress(self, store, pending_view):
        """Test a snapshot arriving after events cannot move progress back."""
        store.apply_event(event(ScanStatus.IN_PROGRESS, 40))
        
        assert store.seed(pending_view.evolve(status=ScanStatus.IN_PROGRESS, progress=20, url='')) is False
        assert store.current_view.progress == 40
        assert store.current_view.status == ScanStatus.IN_PROGRESS
    
    def test_late_pending_seed_keeps_status(self, store, published, pending_view):
        """Test a pending snapshot fetched after live events cannot move the scan back."""
        store.apply_event(event(ScanStatus.IN_PROGRESS, 40))
        
        assert store.seed(pending_view) is False
        newer = pending_view.evolve(progress=50, updated_at=datetime(2030, 1, 1, tzinfo=timezone.utc))
        assert store.seed(newer) is False
        
        assert store.current_view.status == ScanStatus.IN_PROGRESS
        assert store.current_view.progress == 40
        assert len(published) == 1
    
    def test_event_before_seed_creates_view(self, store, published):
        """Test the first event creates the view."""
        assert store.apply_event(event(ScanStatus.IN_PROGRESS, 15)) is True
        
        assert store.current_view.scan_id == 'scan-1'
        assert store.current_view.progress == 15
        assert len(published) == 1
    
    def test_event_for_other_scan_ignored(self, store, published, pending_view):
        """Test events addressed to another scan are dropped."""
        store.seed(pending_view)
        
        assert store.apply_event(event(ScanStatus.COMPLETED, scan_id='scan-2')) is False
        assert store.current_view is pending_view
        assert len(published) == 1
    
    def test_rejected_event_not_published(self, store, published, pending_view, caplog):
        """Test out-of-order events are logged and dropped."""
        caplog.set_level(logging.WARNING, logger='vuln_watch')
        store.seed(pending_view)
        store.apply_event(event(ScanStatus.IN_PROGRESS, 40))
        
        assert store.apply_event(event(ScanStatus.IN_PROGRESS, 10)) is False
        
        assert store.current_view.progress == 40
        assert len(published) == 2
        assert "Out-of-order event" in caplog.text
    
    def test_status_regression_not_published(self, store, published, pending_view):
        """Test an event moving a running scan back to pending is dropped."""
        store.seed(pending_view)
        store.apply_event(event(ScanStatus.IN_PROGRESS, 40))
        running = store.current_view
        
        assert store.apply_event(event(ScanStatus.PENDING, 50)) is False
        
        assert store.current_view is running
        assert len(published) == 2
    
    def test_duplicate_event_published_once(self, store, published, pending_view):
        """Test replayed events cause a single publication."""
        store.seed(pending_view)
        
        store.apply_event(event(ScanStatus.IN_PROGRESS, 40))
        store.apply_event(event(ScanStatus.IN_PROGRESS, 40))
        
        assert len(published) == 2
    
    def test_end_to_end_sequence(self, store, published, pending_view):
        """Test a realistic event sequence with one stale update."""
        store.seed(pending_view)
        
        assert store.apply_event(event(ScanStatus.IN_PROGRESS, 40)) is True
        assert store.apply_event(event(ScanStatus.IN_PROGRESS, 10)) is False
        assert store.apply_event(event(ScanStatus.COMPLETED, 100)) is True
        
        assert [(v.status, v.progress) for v in published] == [
            (ScanStatus.PENDING, 0),
            (ScanStatus.IN_PROGRESS, 40),
            (ScanStatus.COMPLETED, 100),
        ]
    
    def test_timestamps_advance(self, store, published, pending_view):
        """Test accepted mutations take a fresh timestamp."""
        store.seed(pending_view)
        store.apply_event(event(ScanStatus.IN_PROGRESS, 10))
        store.apply_event(event(ScanStatus.IN_PROGRESS, 20))
        
        assert published[1].updated_at < published[2].updated_at
    
    def test_published_views_are_immutable(self, store, published, pending_view):
        """Test subscribers cannot alter the stored view."""
        store.seed(pending_view)
        
        with pytest.raises(AttributeError):
            published[0].progress = 99
        assert store.current_view.progress == 0
    
    def test_failing_subscriber_isolated(self, store, pending_view):
        """Test one failing subscriber does not starve others."""
        received = []
        
        def broken(view):
            raise RuntimeError("subscriber bug")
        
        store.subscribe(broken)
        store.subscribe(received.append)
        store.seed(pending_view)
        
        assert received == [pending_view]
    
    def test_unsubscribe(self, store, pending_view):
        """Test unsubscribed callbacks stop receiving views."""
        received = []
        unsubscribe = store.subscribe(received.append)
        
        unsubscribe()
        unsubscribe()
        store.seed(pending_view)
        
        assert received == []
