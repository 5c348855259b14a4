"""Base exception classes for VulnWatch."""

from typing import Optional, Dict, Any


class VulnWatchException(Exception):
    """Base exception class for all VulnWatch exceptions.
    
    Carries a machine-readable error code, structured details and an
    optional suggestion so that callers can log or display errors uniformly.
    """
    
    def __init__(self, message: str, error_code: Optional[str] = None, 
                 details: Optional[Dict[str, Any]] = None, 
                 suggestion: Optional[str] = None):
        """Initialize base exception.
        
        Args:
            message: Human-readable error message
            error_code: Machine-readable error code for programmatic handling
            details: Additional details about the error
            suggestion: Suggested action to resolve the error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestion = suggestion
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization.
        
        Returns:
            Dictionary representation of the exception
        """
        return {
            'exception_type': self.__class__.__name__,
            'message': self.message,
            'error_code': self.error_code,
            'details': self.details,
            'suggestion': self.suggestion,
        }
    
    def __str__(self) -> str:
        """Return string representation of exception."""
        if self.suggestion:
            return f"{self.message}. Suggestion: {self.suggestion}"
        return self.message


class VulnWatchError(VulnWatchException):
    """Recoverable error.
    
    Raised for conditions the engine absorbs locally: the tracked view stays
    consistent and subscribers keep receiving updates.
    """
    pass


class VulnWatchCriticalError(VulnWatchException):
    """Non-recoverable error.
    
    Raised when a data source violated its contract and the result cannot be
    shown to the user.
    """
    pass
