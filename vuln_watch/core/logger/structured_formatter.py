"""JSON log lines for machine consumption."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict


# Attributes every LogRecord carries; anything else came in through `extra=`
RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord('', logging.NOTSET, '', 0, '', (), None))
) | {'message', 'asctime', 'taskName'}

# Identifiers lifted to the top level so lines can be filtered per scan
CONTEXT_FIELDS = ('scan_id', 'stream_id')


class StructuredFormatter(logging.Formatter):
    """Formats each record as a single-line JSON object.

    Scan and stream identifiers are read from `extra=` or from the details
    of an exception passed as `extra={'error': exc.to_dict()}` and emitted
    as top-level fields, together with the exception's error code. The raw
    extras are kept under `extra` unless disabled.
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        extra = {
            key: value for key, value in record.__dict__.items()
            if key not in RECORD_ATTRIBUTES and not key.startswith('_')
        }

        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(self._context(extra))

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        if self.include_extra and extra:
            entry['extra'] = extra

        return json.dumps(entry, ensure_ascii=False, separators=(',', ':'), default=str)

    @staticmethod
    def _context(extra: Dict[str, Any]) -> Dict[str, Any]:
        error = extra.get('error')
        details: Dict[str, Any] = {}
        context: Dict[str, Any] = {}

        if isinstance(error, dict):
            details = error.get('details') or {}
            if error.get('error_code'):
                context['error_code'] = error['error_code']

        for key in CONTEXT_FIELDS:
            value = extra.get(key, details.get(key))
            if value is not None:
                context[key] = value
        return context
