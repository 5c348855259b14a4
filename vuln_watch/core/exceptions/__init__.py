"""Exception classes for VulnWatch."""

from .base_exceptions import VulnWatchException, VulnWatchError, VulnWatchCriticalError
from .config_exceptions import ConfigurationError, ConfigValidationError
from .tracking_exceptions import (
    TrackingError, ChannelError, UnknownStatusError, OutOfOrderEventError
)
from .report_exceptions import InvalidSeverityError, InconsistentAggregationError
from .api_exceptions import APIError, NotFoundError, ServerError

__all__ = [
    'VulnWatchException', 'VulnWatchError', 'VulnWatchCriticalError',
    'ConfigurationError', 'ConfigValidationError',
    'TrackingError', 'ChannelError', 'UnknownStatusError', 'OutOfOrderEventError',
    'InvalidSeverityError', 'InconsistentAggregationError',
    'APIError', 'NotFoundError', 'ServerError'
]
