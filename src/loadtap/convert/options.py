"""
LoadTap Conversion Options

Options controlling script generation, loadable from a YAML profile.

Example profile:
    enable_checks: true
    batch_window_ms: 500
    skip:
      - "*.google-analytics.com"
"""

from dataclasses import dataclass, field, fields
from datetime import timedelta
from typing import Any, Dict, List

import yaml

from ..errors import ConfigurationError

DEFAULT_BATCH_WINDOW_MS = 500

_PROFILE_KEYS = {
    'enable_checks',
    'return_on_failed_check',
    'batch_window_ms',
    'no_batch',
    'correlate',
    'only',
    'skip',
    'strict_correlation',
}


@dataclass
class ConversionOptions:
    """Options for a single HAR to k6 conversion."""

    enable_checks: bool = False
    return_on_failed_check: bool = False
    batch_window: timedelta = field(
        default_factory=lambda: timedelta(milliseconds=DEFAULT_BATCH_WINDOW_MS)
    )
    no_batch: bool = False
    correlate: bool = False
    only: List[str] = field(default_factory=list)
    skip: List[str] = field(default_factory=list)
    strict_correlation: bool = False

    def validate(self) -> 'ConversionOptions':
        """
        Reject invalid option combinations.

        Raises:
            ConfigurationError: If the combination cannot be honoured
        """
        if self.return_on_failed_check and not self.enable_checks:
            raise ConfigurationError(
                "return on failed check requires status code checks to be enabled"
            )
        if self.correlate and not self.no_batch:
            raise ConfigurationError("correlation requires batching to be disabled (no-batch)")
        if self.batch_window < timedelta(0):
            raise ConfigurationError("batch window must not be negative")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConversionOptions':
        """Create options from a profile dictionary."""
        unknown = set(data) - _PROFILE_KEYS
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(sorted(unknown))}")

        window_ms = data.get('batch_window_ms', DEFAULT_BATCH_WINDOW_MS)
        if isinstance(window_ms, bool) or not isinstance(window_ms, (int, float)):
            raise ConfigurationError(f"batch_window_ms must be a number, got {window_ms!r}")

        return cls(
            enable_checks=bool(data.get('enable_checks', False)),
            return_on_failed_check=bool(data.get('return_on_failed_check', False)),
            batch_window=timedelta(milliseconds=window_ms),
            no_batch=bool(data.get('no_batch', False)),
            correlate=bool(data.get('correlate', False)),
            only=_pattern_list(data.get('only'), 'only'),
            skip=_pattern_list(data.get('skip'), 'skip'),
            strict_correlation=bool(data.get('strict_correlation', False)),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ConversionOptions':
        """Load options from a YAML profile."""
        with open(yaml_path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {yaml_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Expected a mapping in {yaml_path}")
        return cls.from_dict(data)

    def with_overrides(self, **overrides: Any) -> 'ConversionOptions':
        """Return a copy with the given non-None fields replaced."""
        names = {f.name for f in fields(self)}
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for key, value in overrides.items():
            if key not in names:
                raise ConfigurationError(f"Unknown option: {key}")
            if value is not None:
                values[key] = value
        return ConversionOptions(**values)


def _pattern_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConfigurationError(f"{name} must be a string or a list of strings")
