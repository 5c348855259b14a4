"""Handler setup for the `vuln_watch` logger hierarchy."""

import logging
import logging.handlers
import re
from pathlib import Path
from typing import Any, Dict, List

from .structured_formatter import StructuredFormatter


ROOT_LOGGER_NAME = 'vuln_watch'
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_MAX_BYTES = 10 * 1024 * 1024

# Transport libraries that log every frame at DEBUG
TRANSPORT_LOGGERS = ('websockets', 'httpx', 'httpcore')

_SIZE_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*([KMG]?B)?\s*$', re.IGNORECASE)
_SIZE_UNITS = {'B': 1, 'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}


def parse_size(value: Any) -> int:
    """Bytes in a size such as '10MB', '512KB' or 2048; 10MB when unreadable."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = _SIZE_PATTERN.match(str(value))
    if match is None:
        return DEFAULT_MAX_BYTES
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[(unit or 'B').upper()])


class LoggerManager:
    """Installs console and file handlers on the package logger.

    The console uses `logging.format` except in production, where it writes
    the same JSON lines as the rotating log file. Building a new manager
    replaces the handlers installed by a previous one.
    """

    def __init__(self, config: Dict[str, Any]):
        """Configure logging.

        Args:
            config: Settings with optional `logging` and `system` sections
        """
        self.settings = config.get('logging') or {}
        self.environment = (config.get('system') or {}).get('environment')
        self.level = self._parse_level(self.settings.get('level', 'INFO'))
        self.logger = logging.getLogger(ROOT_LOGGER_NAME)
        self.handlers: List[logging.Handler] = []
        self._install()

    @staticmethod
    def _parse_level(name: Any) -> int:
        level = logging.getLevelName(str(name).upper())
        return level if isinstance(level, int) else logging.INFO

    def _install(self) -> None:
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self.handlers.append(self._build_console_handler())
        log_file = self.settings.get('file')
        if log_file:
            self.handlers.append(self._build_file_handler(Path(log_file)))

        self.logger.setLevel(self.level)
        for handler in self.handlers:
            handler.setLevel(self.level)
            self.logger.addHandler(handler)

        for name in TRANSPORT_LOGGERS:
            logging.getLogger(name).setLevel(max(self.level, logging.WARNING))

    def _build_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler()
        if self.environment == 'production':
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(logging.Formatter(self.settings.get('format') or DEFAULT_FORMAT))
        return handler

    def _build_file_handler(self, log_file: Path) -> logging.Handler:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=parse_size(self.settings.get('max_file_size', '10MB')),
            backupCount=int(self.settings.get('backup_count', 5)),
            encoding='utf-8'
        )
        handler.setFormatter(StructuredFormatter())
        return handler

    def shutdown(self) -> None:
        """Flush, close and detach the handlers this manager installed."""
        for handler in self.handlers:
            handler.flush()
            handler.close()
            self.logger.removeHandler(handler)
        self.handlers.clear()
