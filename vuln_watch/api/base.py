"""Contract for the scan service API consumed by the tracking engine."""

from abc import ABC, abstractmethod
from typing import List

from ..progress.models import ScanView
from ..reporting.models import ReportPayload


class ScanAPI(ABC):
    """Asynchronous access to scans and their reports.
    
    Implementations normalize server payloads before returning them; the
    engine never sees raw field names.
    """
    
    @abstractmethod
    async def fetch_snapshot(self, scan_id: str) -> ScanView:
        """Fetch the current state of a scan.
        
        Raises:
            NotFoundError: If the scan does not exist
        """
    
    @abstractmethod
    async def fetch_report(self, scan_id: str) -> ReportPayload:
        """Fetch the report of a completed scan.
        
        Raises:
            NotFoundError: If no report exists for the scan
            ServerError: If the service failed to produce it
        """
    
    async def start_scan(self, url: str) -> str:
        """Request a new scan of `url` and return its identifier."""
        raise NotImplementedError
    
    async def list_scans(self) -> List[ScanView]:
        """List the scans of the current user."""
        raise NotImplementedError
    
    async def close(self) -> None:
        """Release any resources held by the client."""
