"""
World settings loader

Defaults for every world created in this process, from three sources
(lowest priority first):
1. Built-in defaults
2. Environment variables (WORLDS_*)
3. worlds.tsv (key<TAB>value rows, '#' starts a comment)

Per-world overrides are passed straight to World / create_world and win over
all of these.
"""

import csv
import os
from pathlib import Path
from typing import Dict, FrozenSet, Optional


# Always importable from the host, whatever the allowlist says
ALWAYS_ALLOWED = frozenset({'__future__'})

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}

_ENVIRONMENT = {
    'source_suffix': 'WORLDS_SOURCE_SUFFIX',
    'self_reference_key': 'WORLDS_SELF_REFERENCE_KEY',
    'inherit_builtins': 'WORLDS_INHERIT_BUILTINS',
    'host_modules': 'WORLDS_HOST_MODULES',
    'log_dir': 'WORLDS_LOG_DIR',
    'max_log_size': 'WORLDS_MAX_LOG_SIZE',
}


class WorldSettings:
    """Load and hold world defaults"""

    def __init__(self, config_file: str | Path = "worlds.tsv"):
        self.config_file = Path(config_file)

        self.source_suffix = '.py'
        self.self_reference_key = '__world__'
        self.inherit_builtins = True
        self.host_modules: Optional[FrozenSet[str]] = None  # None means any
        self.log_dir: Optional[Path] = None
        self.max_log_size = 10 * 1024 * 1024  # 10MB

        self._load()

    def _load(self):
        """Apply environment variables, then the TSV file"""
        for key, variable in _ENVIRONMENT.items():
            value = os.environ.get(variable)
            if value is not None:
                self._apply(key, value)

        for key, value in self._read_file().items():
            self._apply(key, value)

    def _read_file(self) -> Dict[str, str]:
        """Read key/value rows from the TSV file"""
        if not self.config_file.exists():
            return {}

        values = {}
        with open(self.config_file, 'r', encoding='utf-8', newline='') as f:
            reader = csv.reader(
                (line for line in f if line.strip() and not line.startswith('#')),
                delimiter='\t',
            )
            for row in reader:
                if len(row) < 2:
                    continue
                values[row[0].strip()] = row[1].strip()
        return values

    def _apply(self, key: str, value: str) -> None:
        """Set one setting from its string form"""
        if key == 'source_suffix':
            self.source_suffix = value if value.startswith('.') else f'.{value}'
        elif key == 'self_reference_key':
            self.self_reference_key = value
        elif key == 'inherit_builtins':
            self.inherit_builtins = value.strip().lower() in _TRUE_VALUES
        elif key == 'host_modules':
            self.host_modules = parse_module_list(value)
        elif key == 'log_dir':
            self.log_dir = Path(value) if value else None
        elif key == 'max_log_size':
            self.max_log_size = int(value)
        # Unknown keys are ignored so one file can serve several versions

    def allows_host_module(self, specifier: str) -> bool:
        """Check a bare specifier against the host-module allowlist"""
        return host_module_allowed(specifier, self.host_modules)

    def as_dict(self) -> Dict[str, object]:
        """Current values, for introspection and logging"""
        return {
            'source_suffix': self.source_suffix,
            'self_reference_key': self.self_reference_key,
            'inherit_builtins': self.inherit_builtins,
            'host_modules': sorted(self.host_modules) if self.host_modules is not None else None,
            'log_dir': str(self.log_dir) if self.log_dir else None,
            'max_log_size': self.max_log_size,
        }


def host_module_allowed(specifier: str, host_modules: Optional[FrozenSet[str]]) -> bool:
    """None allows every host module; otherwise match the top-level package"""
    top_level = specifier.split('.')[0]
    if top_level in ALWAYS_ALLOWED or host_modules is None:
        return True
    return top_level in host_modules


def parse_module_list(value: str) -> FrozenSet[str]:
    """'json, os,re' -> frozenset({'json', 'os', 're'})"""
    return frozenset(name.strip() for name in value.split(',') if name.strip())


# Global instance (lazy loaded)
_settings = None


def get_settings() -> WorldSettings:
    """Get the process-wide default settings"""
    global _settings
    if _settings is None:
        _settings = WorldSettings()
    return _settings


def reload_settings():
    """Reload settings from the environment and file"""
    global _settings
    _settings = WorldSettings()
