"""Layered settings for VulnWatch.

Later sources win: the packaged `config/default.yml`, then the
`config/{VULN_WATCH_ENV}.yml` overlay, then a user file, then the
environment variables listed in ENV_OVERRIDES.
"""

import copy
import os
import yaml
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple
from pathlib import Path

from .config_validator import ConfigValidator
from ..exceptions import ConfigurationError, ConfigValidationError


PACKAGE_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ('1', 'true', 'yes', 'on'):
        return True
    if lowered in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError(f"expected a boolean, got {value!r}")


# Environment variable -> (setting, converter)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    'VULN_WATCH_BASE_URL': ('api.base_url', str),
    'VULN_WATCH_WS_URL': ('channel.ws_url', str),
    'VULN_WATCH_RECONNECT': ('channel.reconnect', _parse_bool),
    'VULN_WATCH_RECONNECT_DELAY_MS': ('channel.reconnect_delay_ms', int),
    'VULN_WATCH_LOG_LEVEL': ('logging.level', str.upper),
}


def merge_settings(base: Dict[str, Any], overlay: Mapping[str, Any]) -> None:
    """Merge `overlay` into `base` in place; nested mappings merge key by key."""
    for key, value in overlay.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merge_settings(current, value)
        else:
            base[key] = copy.deepcopy(value)


class ConfigManager:
    """Settings merged from packaged defaults, overlays and the environment.

    `sources` lists every file and environment variable that contributed,
    in the order they were applied.
    """

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """Load settings.

        Args:
            config_path: Optional user file; it must exist when given
            environ: Environment to read overrides from; os.environ by default

        Raises:
            ConfigurationError: If a file cannot be parsed or an override is invalid
        """
        self.config_path = Path(config_path) if config_path else None
        self.environ = os.environ if environ is None else environ
        self.config: Dict[str, Any] = {}
        self.sources: List[str] = []

        for path, required in self._files():
            self._merge_file(path, required)
        self._apply_environment()

    def _files(self) -> Iterator[Tuple[Path, bool]]:
        env = self.environ.get('VULN_WATCH_ENV', 'development')
        yield PACKAGE_CONFIG_DIR / 'default.yml', False
        yield PACKAGE_CONFIG_DIR / f'{env}.yml', False
        if self.config_path is not None:
            yield self.config_path, True

    def _merge_file(self, path: Path, required: bool) -> None:
        if not path.is_file():
            if required:
                raise ConfigurationError(
                    f"Configuration file not found: {path}",
                    source=str(path),
                    suggestion='Specify a valid configuration file path'
                )
            return

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            raise ConfigurationError(f"Failed to load configuration from {path}: {e}", source=str(path)) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration in {path} must be a mapping, got {type(data).__name__}",
                source=str(path)
            )

        merge_settings(self.config, data)
        self.sources.append(str(path))

    def _apply_environment(self) -> None:
        for name, (key, convert) in ENV_OVERRIDES.items():
            raw = self.environ.get(name)
            if not raw:
                continue
            try:
                value = convert(raw)
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {name}: {e}", config_key=key, source=name) from e
            self.set(key, value)
            self.sources.append(name)

    def get(self, key: str, default: Any = None) -> Any:
        """Value at a dot-separated key such as 'channel.reconnect', or `default`."""
        current: Any = self.config
        for part in key.split('.'):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def set(self, key: str, value: Any) -> None:
        """Set the value at a dot-separated key, creating sections as needed."""
        *sections, leaf = key.split('.')
        current = self.config
        for part in sections:
            current = current.setdefault(part, {})
        current[leaf] = value

    def validate(self) -> List[str]:
        """Validation error messages; empty when the settings are usable."""
        return ConfigValidator(self.config).validate()

    def validate_or_raise(self) -> None:
        """Raise ConfigValidationError listing every validation problem."""
        errors = self.validate()
        if errors:
            raise ConfigValidationError(errors, source=self.sources[-1] if self.sources else None)

    def to_dict(self) -> Dict[str, Any]:
        """Deep copy of the merged settings."""
        return copy.deepcopy(self.config)
