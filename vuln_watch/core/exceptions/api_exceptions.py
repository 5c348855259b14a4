"""Exceptions raised by scan API clients."""

from typing import Optional
from .base_exceptions import VulnWatchError


class APIError(VulnWatchError):
    """Base class for API collaborator errors."""
    
    def __init__(self, message: str, resource: Optional[str] = None,
                 status_code: Optional[int] = None, **kwargs):
        details = kwargs.get('details', {})
        if resource:
            details['resource'] = resource
        if status_code is not None:
            details['status_code'] = status_code
        
        kwargs['details'] = details
        kwargs['error_code'] = kwargs.get('error_code', 'API_ERROR')
        
        super().__init__(message, **kwargs)
        
        self.resource = resource
        self.status_code = status_code


class NotFoundError(APIError):
    """Requested scan or report does not exist."""
    
    def __init__(self, resource: str, **kwargs):
        kwargs['error_code'] = 'NOT_FOUND'
        kwargs.setdefault('status_code', 404)
        super().__init__(f"Resource not found: {resource}", resource=resource, **kwargs)


class ServerError(APIError):
    """Server failed to produce a response."""
    
    def __init__(self, resource: str, reason: str, **kwargs):
        """Initialize server error.
        
        Args:
            resource: Resource being requested
            reason: Failure description from the transport or server
            **kwargs: Additional arguments for base class
        """
        kwargs['error_code'] = 'SERVER_ERROR'
        kwargs['suggestion'] = 'Retry later or check the scan service status'
        super().__init__(f"Server error for {resource}: {reason}", resource=resource, **kwargs)
        
        self.reason = reason
