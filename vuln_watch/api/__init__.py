"""Scan service API clients."""

from .base import ScanAPI
from .http import HttpScanAPI

__all__ = ['ScanAPI', 'HttpScanAPI']
