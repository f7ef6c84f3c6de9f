"""
LoadTap Converter

Entry point tying filtering, grouping, correlation, batching and emission
together: capture in, k6 script out.
"""

import logging
from typing import Optional

from ..har import Capture
from .emitter import ScriptEmitter
from .filters import RequestFilter
from .grouping import group_entries
from .options import ConversionOptions

logger = logging.getLogger("loadtap.convert")


def convert(capture: Capture, options: Optional[ConversionOptions] = None) -> str:
    """
    Convert a decoded capture into a k6 script.

    Options are validated before any entry is looked at. Any error aborts the
    whole conversion; there is no partial output.

    Args:
        capture: Decoded HAR capture
        options: Conversion options (defaults: batched, no checks)

    Returns:
        The complete script text

    Raises:
        ConfigurationError: Invalid option combination
        DecodeError: Malformed URL or JSON body, or unknown page reference
        SequencingError: Recorded redirect not followed by the next request
        CorrelationConsistencyError: Shape mismatch with strict correlation
    """
    options = (options or ConversionOptions()).validate()

    request_filter = RequestFilter(only=options.only, skip=options.skip)
    groups = group_entries(capture, request_filter)

    logger.info("Converting %d of %d entries across %d page groups (%s mode)",
                sum(len(g.entries) for g in groups), len(capture.entries), len(groups),
                "sequential" if options.no_batch else "batched")

    emitter = ScriptEmitter(options)
    script = emitter.render(capture, groups)

    if options.correlate:
        logger.info("Correlated %d request values", emitter.correlator.rewrites)
    return script
