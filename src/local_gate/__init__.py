"""
Local Gate - Context Pack Engine for local inference backends.

Turns note selections into reusable `@context-pack(<id>)` references,
expands them into ranked, redacted context at send time, and guards the
outgoing request so tool-less local models do not loop on tool calls.
"""

from local_gate.__version__ import (
    __version__,
    __version_info__,
    get_version,
    get_features,
    FEATURES,
)

__all__ = [
    "__version__",
    "__version_info__",
    "get_version",
    "get_features",
    "FEATURES",
]
