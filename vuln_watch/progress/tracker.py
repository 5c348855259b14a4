"""Live tracking of scans for the presentation layer."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from .adapters import payload_to_event
from .channel import Connector, ReconnectingChannel
from .models import ScanStatus, ScanView
from .phases import PhaseMapper, ScanPhase
from .store import ScanStateStore
from ..api.base import ScanAPI
from ..core.config import TrackerConfig
from ..core.exceptions import ChannelError, TrackingError, VulnWatchException
from ..reporting.assembler import ReportAssembler
from ..reporting.models import ScanReport


logger = logging.getLogger(__name__)


ViewCallback = Callable[[ScanView], None]


def _noop() -> None:
    pass


class ScanTracker:
    """Tracks one scan from snapshot to report.

    Seeds a ScanStateStore from the API snapshot, feeds it with events from
    a ReconnectingChannel and, once the scan completes, fetches and
    assembles the report exactly once.
    """

    def __init__(self, scan_id: str, api: ScanAPI,
                 config: Optional[TrackerConfig] = None,
                 assembler: Optional[ReportAssembler] = None,
                 connector: Optional[Connector] = None):
        """Initialize tracker.

        Args:
            scan_id: Scan to track
            api: Client used for the snapshot and report fetches
            config: Connection settings
            assembler: Report assembler; a default one is created otherwise
            connector: Transport for the push channel; websockets by default
        """
        self.scan_id = scan_id
        self.api = api
        self.config = config or TrackerConfig()
        self.assembler = assembler or ReportAssembler()

        self.store = ScanStateStore(scan_id)
        self.phases = PhaseMapper()
        self.channel = ReconnectingChannel(
            self.config.stream_url,
            on_connect=self._on_connect,
            on_message=self._on_message,
            on_disconnect=self._on_disconnect,
            on_error=self._on_channel_error,
            reconnect=self.config.reconnect,
            reconnect_delay_ms=self.config.reconnect_delay_ms,
            reconnect_backoff=self.config.reconnect_backoff,
            max_reconnect_delay_ms=self.config.max_reconnect_delay_ms,
            connector=connector,
        )

        self.report_error: Optional[VulnWatchException] = None
        self._report: Optional[ScanReport] = None
        self._report_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._waiters: Set[asyncio.Future] = set()
        self._subscribers: List[ViewCallback] = []
        self._started = False
        self._closed = False

        self._store_unsubscribe = self.store.subscribe(self._on_view)

    @property
    def is_connected(self) -> bool:
        return self.channel.is_connected

    @property
    def current_phase(self) -> Optional[ScanPhase]:
        return self.phases.current

    def get_current_view(self) -> Optional[ScanView]:
        return self.store.current_view

    def get_report(self) -> Optional[ScanReport]:
        return self._report

    def subscribe(self, callback: ViewCallback) -> Callable[[], None]:
        """Register a callback for view updates.

        The current view, if any, is delivered immediately. A closed tracker
        delivers nothing and returns an unsubscribe that does nothing.

        Returns:
            Function removing the subscription
        """
        if self._closed:
            return _noop

        self._subscribers.append(callback)

        view = self.store.current_view
        if view is not None:
            self._deliver(callback, view)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def start(self) -> None:
        """Fetch the snapshot and open the push channel.

        Raises:
            NotFoundError: If the scan does not exist
        """
        if self._started:
            return
        self._started = True

        snapshot = await self.api.fetch_snapshot(self.scan_id)
        if self._closed:
            return
        self.store.seed(snapshot)

        view = self.store.current_view
        if view is not None and view.status.is_terminal:
            logger.info(f"Scan {self.scan_id} already {view.status.value}, not opening channel")
            return

        self.channel.open(self.scan_id)

    async def wait_for_report(self) -> ScanReport:
        """Wait until the report of a completed scan is available.

        Raises:
            TrackingError: If the scan failed or the tracker was closed first
            InvalidSeverityError: If the report holds an unknown severity
            InconsistentAggregationError: If aggregation produced mismatched counts
            NotFoundError: If the service has no report for the scan
            ServerError: If the report fetch failed
        """
        while self._report is None:
            if self.report_error is not None:
                raise self.report_error
            if self._report_task is not None and not self._report_task.done():
                await asyncio.wait({self._report_task})
                continue

            view = self.store.current_view
            if view is not None and view.status == ScanStatus.FAILED:
                raise TrackingError(f"Scan {self.scan_id} failed", scan_id=self.scan_id)
            if self._closed:
                raise TrackingError(f"Tracker for scan {self.scan_id} is closed", scan_id=self.scan_id)

            waiter = asyncio.get_running_loop().create_future()
            self._waiters.add(waiter)
            try:
                await waiter
            finally:
                self._waiters.discard(waiter)

        return self._report

    async def close(self) -> None:
        """Stop tracking: close the channel and drop all subscribers."""
        if self._closed:
            return
        self._closed = True

        self._subscribers.clear()
        self._store_unsubscribe()
        self._wake_waiters()

        try:
            await self.channel.close()
        finally:
            tasks = list(self._background)
            if self._report_task is not None and not self._report_task.done():
                tasks.append(self._report_task)
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

        logger.debug(f"Tracker for scan {self.scan_id} closed")

    async def __aenter__(self) -> 'ScanTracker':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Channel callbacks

    def _on_connect(self) -> None:
        logger.debug(f"Live updates connected for scan {self.scan_id}")

    def _on_disconnect(self) -> None:
        logger.debug(f"Live updates interrupted for scan {self.scan_id}")

    def _on_channel_error(self, error: ChannelError) -> None:
        logger.debug(f"Channel error for scan {self.scan_id}: {error.reason}")

    def _on_message(self, payload: Any) -> None:
        event = payload_to_event(payload)
        if event is not None:
            self.store.apply_event(event)

    # Store callback

    def _on_view(self, view: ScanView) -> None:
        self.phases.update(view.progress)

        for callback in list(self._subscribers):
            self._deliver(callback, view)

        if view.status.is_terminal:
            self._spawn(self.channel.close())
        if view.status == ScanStatus.COMPLETED and self._report_task is None:
            self._report_task = asyncio.get_running_loop().create_task(
                self._load_report(), name=f"report-{self.scan_id}"
            )

        self._wake_waiters()

    def _wake_waiters(self) -> None:
        for waiter in list(self._waiters):
            if not waiter.done():
                waiter.set_result(None)

    def _deliver(self, callback: ViewCallback, view: ScanView) -> None:
        try:
            callback(view)
        except Exception as e:
            logger.exception(f"Subscriber failed for scan {self.scan_id}: {e}")

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _load_report(self) -> None:
        try:
            payload = await self.api.fetch_report(self.scan_id)
            self._report = self.assembler.build(payload)
        except VulnWatchException as e:
            self.report_error = e
            logger.error(f"Report for scan {self.scan_id} unavailable: {e}", extra={'error': e.to_dict()})
        except Exception as e:
            self.report_error = TrackingError(
                f"Report for scan {self.scan_id} could not be loaded: {e}",
                scan_id=self.scan_id,
                details={'cause': type(e).__name__},
            )
            logger.exception(f"Report for scan {self.scan_id} could not be loaded")
        finally:
            self._wake_waiters()


class TrackerRegistry:
    """Trackers keyed by scan identifier, as used by the UI layer."""

    def __init__(self, api: ScanAPI, config: Optional[TrackerConfig] = None,
                 assembler: Optional[ReportAssembler] = None,
                 connector: Optional[Connector] = None):
        self.api = api
        self.config = config or TrackerConfig()
        self.assembler = assembler
        self.connector = connector
        self.trackers: Dict[str, ScanTracker] = {}

    async def track(self, scan_id: str) -> ScanTracker:
        """Start tracking a scan, or return its existing tracker."""
        tracker = self.trackers.get(scan_id)
        if tracker is not None:
            return tracker

        tracker = ScanTracker(scan_id, self.api, self.config,
                              assembler=self.assembler, connector=self.connector)
        self.trackers[scan_id] = tracker
        try:
            await tracker.start()
        except BaseException:
            self.trackers.pop(scan_id, None)
            await tracker.close()
            raise
        return tracker

    def subscribe(self, scan_id: str, callback: ViewCallback) -> Callable[[], None]:
        """Subscribe to a tracked scan.

        Raises:
            TrackingError: If the scan is not tracked
        """
        return self._get(scan_id).subscribe(callback)

    def get_current_view(self, scan_id: str) -> Optional[ScanView]:
        tracker = self.trackers.get(scan_id)
        return tracker.get_current_view() if tracker else None

    def get_report(self, scan_id: str) -> Optional[ScanReport]:
        tracker = self.trackers.get(scan_id)
        return tracker.get_report() if tracker else None

    async def untrack(self, scan_id: str) -> None:
        tracker = self.trackers.pop(scan_id, None)
        if tracker is not None:
            await tracker.close()

    async def close(self) -> None:
        """Close every tracker."""
        for scan_id in list(self.trackers):
            await self.untrack(scan_id)

    def _get(self, scan_id: str) -> ScanTracker:
        try:
            return self.trackers[scan_id]
        except KeyError:
            raise TrackingError(f"Scan {scan_id} is not tracked", scan_id=scan_id) from None
