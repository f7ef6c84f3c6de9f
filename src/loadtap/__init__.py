"""
LoadTap - turn recorded browser sessions (HAR) into k6 load-test scripts.
"""

from .convert import ConversionOptions, convert
from .errors import (
    ConfigurationError,
    ConversionError,
    CorrelationConsistencyError,
    DecodeError,
    SequencingError,
)
from .har import HARLoader

__all__ = [
    'convert',
    'ConversionOptions',
    'HARLoader',
    'ConversionError',
    'ConfigurationError',
    'DecodeError',
    'CorrelationConsistencyError',
    'SequencingError',
]

__version__ = '1.0.0'
