"""Authoritative state of one tracked scan."""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from .models import ChannelEvent, ScanStatus, ScanView, utc_now
from ..core.exceptions import OutOfOrderEventError


logger = logging.getLogger(__name__)


ViewCallback = Callable[[ScanView], None]


def merge_event(view: ScanView, event: ChannelEvent, now: datetime) -> ScanView:
    """Merge a channel event into a view.

    Status only moves forward (PENDING, IN_PROGRESS, then a terminal status)
    and a terminal status is final. Present event fields overwrite the view,
    except that progress may only decrease when the event moves the scan into
    a terminal status. A completed scan always reports 100% progress.

    Args:
        view: Current view
        event: Partial update for the same scan
        now: Timestamp for the merged view

    Returns:
        The merged view, or `view` itself when the event changes nothing

    Raises:
        OutOfOrderEventError: If the event would regress the view
    """
    if event.status is not None and event.status != view.status:
        if view.status.is_terminal:
            raise OutOfOrderEventError(
                view.scan_id,
                f"status {event.status.value} after terminal status {view.status.value}"
            )
        if event.status.rank < view.status.rank:
            raise OutOfOrderEventError(
                view.scan_id,
                f"status {event.status.value} after {view.status.value}"
            )

    status = event.status if event.status is not None else view.status
    enters_terminal = status.is_terminal and not view.status.is_terminal

    progress = view.progress
    progress_dropped = False
    if event.progress is not None:
        if event.progress >= view.progress or enters_terminal:
            progress = event.progress
        else:
            progress_dropped = True

    if status == ScanStatus.COMPLETED:
        progress = 100

    merged = view.evolve(
        status=status,
        progress=progress,
        url=event.url if event.url else view.url,
    )

    if merged.same_state(view):
        if progress_dropped:
            raise OutOfOrderEventError(
                view.scan_id,
                f"progress {event.progress} is lower than current {view.progress}"
            )
        return view

    return merged.evolve(updated_at=now)


class ScanStateStore:
    """Single source of truth for one scan's live view.

    Reconciles the one-shot snapshot with the stream of channel events and
    publishes every accepted change. Views are immutable, so subscribers
    receive the same object the store holds without being able to alter it.
    """

    def __init__(self, scan_id: str, clock: Callable[[], datetime] = utc_now):
        """Initialize store.

        Args:
            scan_id: Identifier of the tracked scan
            clock: Source of timestamps for merged views
        """
        self.scan_id = scan_id
        self._clock = clock
        self._view: Optional[ScanView] = None
        self._seeded = False
        self._subscribers: List[ViewCallback] = []

    @property
    def current_view(self) -> Optional[ScanView]:
        return self._view

    @property
    def is_seeded(self) -> bool:
        return self._seeded

    def subscribe(self, callback: ViewCallback) -> Callable[[], None]:
        """Register a callback for published views.

        Returns:
            Function removing the subscription; safe to call more than once
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def clear_subscribers(self) -> None:
        self._subscribers.clear()

    def seed(self, snapshot: ScanView) -> bool:
        """Set the initial view from a fetched snapshot.

        A snapshot is taken as-is only for the first observation of the scan.
        Afterwards it is ignored unless newer than the current view, and even
        then it goes through the same merge rules as a channel event.

        Returns:
            True if the view changed and was published
        """
        if snapshot.scan_id != self.scan_id:
            logger.warning(f"Ignoring snapshot for scan {snapshot.scan_id} in store for {self.scan_id}")
            return False

        self._seeded = True

        if self._view is None:
            if snapshot.status == ScanStatus.COMPLETED and snapshot.progress != 100:
                snapshot = snapshot.evolve(progress=100)
            self._set_view(snapshot)
            return True

        if snapshot.updated_at <= self._view.updated_at:
            logger.debug(f"Ignoring stale snapshot for scan {self.scan_id}")
            return False

        event = ChannelEvent(
            scan_id=snapshot.scan_id,
            status=snapshot.status,
            progress=snapshot.progress,
            url=snapshot.url or None,
        )
        try:
            merged = merge_event(self._view, event, self._clock())
        except OutOfOrderEventError as e:
            logger.debug(f"Snapshot older than live state: {e}")
            return False

        if merged is self._view:
            return False

        self._set_view(merged)
        return True

    def apply_event(self, event: ChannelEvent) -> bool:
        """Merge a channel event into the view.

        Events for other scans are ignored. Rejected and no-op events are
        not published.

        Returns:
            True if the view changed and was published
        """
        if event.scan_id != self.scan_id:
            logger.debug(f"Ignoring event for scan {event.scan_id} in store for {self.scan_id}")
            return False

        if self._view is None:
            self._set_view(self._view_from_event(event))
            return True

        try:
            merged = merge_event(self._view, event, self._clock())
        except OutOfOrderEventError as e:
            logger.warning(str(e), extra={'error': e.to_dict()})
            return False

        if merged is self._view:
            return False

        self._set_view(merged)
        return True

    def _view_from_event(self, event: ChannelEvent) -> ScanView:
        status = event.status or ScanStatus.PENDING
        progress = 100 if status == ScanStatus.COMPLETED else (event.progress or 0)
        return ScanView(
            scan_id=event.scan_id,
            url=event.url or '',
            status=status,
            progress=progress,
            updated_at=self._clock(),
        )

    def _set_view(self, view: ScanView) -> None:
        previous = self._view
        self._view = view

        if previous is None or previous.status != view.status:
            logger.info(f"Scan {self.scan_id} is {view.status.value} ({view.progress}%)")

        self._publish(view)

    def _publish(self, view: ScanView) -> None:
        for callback in list(self._subscribers):
            try:
                callback(view)
            except Exception as e:
                logger.exception(f"Subscriber failed while handling view of scan {self.scan_id}: {e}")
