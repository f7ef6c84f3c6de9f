"""
LoadTap Convert Module

HAR capture to k6 script conversion.

This module provides:
- Host filtering and page grouping
- Temporal batching of concurrent requests
- Response-to-request value correlation
- k6 script emission
"""

from .batching import split_into_batches, wait_between
from .converter import convert
from .correlation import Correlator, NodeKind, Reference, correlate, json_path_expression, resolve_reference
from .emitter import ScriptEmitter
from .filters import RequestFilter, is_allowed
from .grouping import PageGroup, group_entries
from .options import ConversionOptions

__all__ = [
    'convert',
    'ConversionOptions',
    'RequestFilter',
    'is_allowed',
    'PageGroup',
    'group_entries',
    'split_into_batches',
    'wait_between',
    'Correlator',
    'NodeKind',
    'Reference',
    'correlate',
    'json_path_expression',
    'resolve_reference',
    'ScriptEmitter',
]
