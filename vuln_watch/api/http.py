"""HTTP implementation of the scan service API."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import ScanAPI
from ..core.config import TrackerConfig
from ..core.exceptions import NotFoundError, ServerError
from ..progress.adapters import report_to_payload, snapshot_to_view
from ..progress.models import ScanView
from ..reporting.models import ReportPayload


logger = logging.getLogger(__name__)


class HttpScanAPI(ScanAPI):
    """ScanAPI backed by the service's REST endpoints."""
    
    def __init__(self, config: Optional[TrackerConfig] = None,
                 client: Optional[httpx.AsyncClient] = None):
        """Initialize HTTP client.
        
        Args:
            config: Connection settings; defaults to TrackerConfig()
            client: Pre-built httpx client, mostly for tests
        """
        self.config = config or TrackerConfig()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=f"{self.config.base_url.rstrip('/')}/api",
            timeout=httpx.Timeout(self.config.api_timeout),
        )
    
    async def fetch_snapshot(self, scan_id: str) -> ScanView:
        payload = await self._request('GET', f'/scan/{scan_id}', resource=f'scan {scan_id}')
        try:
            return snapshot_to_view(payload)
        except ValueError as e:
            raise ServerError(f'scan {scan_id}', f'malformed snapshot: {e}') from e
    
    async def fetch_report(self, scan_id: str) -> ReportPayload:
        payload = await self._request('GET', f'/rapports/{scan_id}', resource=f'report {scan_id}')
        try:
            return report_to_payload(scan_id, payload)
        except ValueError as e:
            raise ServerError(f'report {scan_id}', f'malformed report: {e}') from e
    
    async def start_scan(self, url: str) -> str:
        payload = await self._request('POST', '/sites/analyser', resource='scan request', json={'url': url})
        if not isinstance(payload, dict):
            raise ServerError('scan request', 'expected an object response')
        scan_id = payload.get('scanId') or payload.get('id')
        if not scan_id:
            raise ServerError('scan request', 'response carries no scan identifier')
        logger.info(f"Scan {scan_id} started for {url}")
        return str(scan_id)
    
    async def list_scans(self) -> List[ScanView]:
        payload = await self._request('GET', '/scan/user', resource='user scans')
        if not isinstance(payload, list):
            raise ServerError('user scans', 'expected a list of scans')
        try:
            return [snapshot_to_view(item) for item in payload]
        except ValueError as e:
            raise ServerError('user scans', f'malformed scan entry: {e}') from e
    
    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
    
    async def _request(self, method: str, path: str, resource: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ServerError(resource, str(e)) from e
        
        if response.status_code == 404:
            raise NotFoundError(resource)
        if response.is_error:
            raise ServerError(resource, self._error_message(response), status_code=response.status_code)
        
        try:
            return response.json()
        except ValueError as e:
            raise ServerError(resource, f'invalid JSON response: {e}') from e
    
    def _error_message(self, response: httpx.Response) -> str:
        try:
            body: Dict[str, Any] = response.json()
        except ValueError:
            return f'HTTP {response.status_code}'
        if isinstance(body, dict) and body.get('message'):
            return str(body['message'])
        return f'HTTP {response.status_code}'
