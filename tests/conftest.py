"""Test configuration and utilities for VulnWatch test suite."""

import asyncio
import itertools
import json
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List

import pytest

from vuln_watch.api.base import ScanAPI
from vuln_watch.core.config import TrackerConfig
from vuln_watch.core.exceptions import NotFoundError
from vuln_watch.progress.models import ScanStatus, ScanView
from vuln_watch.reporting.models import ReportPayload, Severity, Vulnerability


_CLOSED = object()


class FakeConnection:
    """In-memory stand-in for a websocket client connection."""
    
    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.sent: List[str] = []
        self.closed = False
    
    def __aiter__(self):
        return self
    
    async def __anext__(self):
        item = await self.queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item
    
    def push(self, message: Any) -> None:
        """Deliver a message; dicts are JSON-encoded."""
        if isinstance(message, (dict, list)):
            message = json.dumps(message)
        self.queue.put_nowait(message)
    
    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self.queue.put_nowait(_CLOSED)
    
    def fail(self, error: Exception) -> None:
        """Simulate an abnormal transport failure."""
        self.queue.put_nowait(error)
    
    async def send(self, text: str) -> None:
        if self.closed:
            raise ConnectionError("connection closed")
        self.sent.append(text)
    
    async def close(self) -> None:
        self.closed = True
        self.queue.put_nowait(_CLOSED)


class FakeConnector:
    """Connector handing out FakeConnections and recording every attempt."""
    
    def __init__(self, fail_times: int = 0):
        self.fail_times = fail_times
        self.urls: List[str] = []
        self.connections: List[FakeConnection] = []
    
    @property
    def attempts(self) -> int:
        return len(self.urls)
    
    @property
    def latest(self) -> FakeConnection:
        return self.connections[-1]
    
    async def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise OSError("connection refused")
        connection = FakeConnection()
        self.connections.append(connection)
        return connection


class FakeScanAPI(ScanAPI):
    """ScanAPI serving canned snapshots and reports."""
    
    def __init__(self):
        self.snapshots: Dict[str, ScanView] = {}
        self.reports: Dict[str, ReportPayload] = {}
        self.report_errors: Dict[str, Exception] = {}
        self.report_calls: List[str] = []
    
    async def fetch_snapshot(self, scan_id: str) -> ScanView:
        if scan_id not in self.snapshots:
            raise NotFoundError(f'scan {scan_id}')
        return self.snapshots[scan_id]
    
    async def fetch_report(self, scan_id: str) -> ReportPayload:
        self.report_calls.append(scan_id)
        if scan_id in self.report_errors:
            raise self.report_errors[scan_id]
        if scan_id not in self.reports:
            raise NotFoundError(f'report {scan_id}')
        return self.reports[scan_id]
    
    async def start_scan(self, url: str) -> str:
        scan_id = f"scan-{len(self.snapshots) + 1}"
        self.snapshots[scan_id] = ScanView(scan_id=scan_id, url=url)
        return scan_id
    
    async def list_scans(self) -> List[ScanView]:
        return list(self.snapshots.values())


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the event loop until predicate() holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.001)


def make_vulnerability(vuln_id: str, severity: Any) -> Vulnerability:
    return Vulnerability(
        id=vuln_id,
        name=f"Finding {vuln_id}",
        description="Test finding",
        severity=severity,
        remediation="Apply the vendor patch",
    )


def make_vulnerabilities(high: int = 0, medium: int = 0, low: int = 0, info: int = 0) -> List[Vulnerability]:
    counts = [(Severity.HIGH, high), (Severity.MEDIUM, medium), (Severity.LOW, low), (Severity.INFO, info)]
    ids = itertools.count(1)
    return [
        make_vulnerability(f"v{next(ids)}", severity)
        for severity, count in counts
        for _ in range(count)
    ]


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def test_config() -> Dict[str, Any]:
    """Basic test configuration."""
    return {
        'system': {
            'environment': 'testing',
        },
        'api': {
            'base_url': 'http://scanner.test',
            'timeout': 5,
        },
        'channel': {
            'ws_url': None,
            'reconnect': True,
            'reconnect_delay_ms': 10,
            'reconnect_backoff': 1.0,
            'max_reconnect_delay_ms': None,
        },
        'logging': {
            'level': 'ERROR',  # Reduce noise in tests
            'format': '%(message)s',
        },
        'reporting': {
            'severity_weights': {'high': 10, 'medium': 5, 'low': 2, 'info': 0},
        },
    }


@pytest.fixture
def config_file(temp_dir, test_config):
    """Create temporary configuration file."""
    import yaml
    
    config_file = temp_dir / 'test_config.yml'
    with open(config_file, 'w') as f:
        yaml.dump(test_config, f)
    
    return config_file


@pytest.fixture
def tracker_config() -> TrackerConfig:
    """Tracker settings with a short reconnect delay."""
    return TrackerConfig(base_url='http://scanner.test', reconnect_delay_ms=20)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def fake_api() -> FakeScanAPI:
    return FakeScanAPI()


@pytest.fixture
def clock():
    """Deterministic clock advancing one second per call."""
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ticks = itertools.count(1)
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def pending_view() -> ScanView:
    return ScanView(
        scan_id='scan-1',
        url='https://example.com',
        status=ScanStatus.PENDING,
        progress=0,
        updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
