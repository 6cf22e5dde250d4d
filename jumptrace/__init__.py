"""Public package surface for jumptrace.

Exports the index builder, the sync session, and ``main`` for programmatic
CLI invocation. Implementation lives in submodules.
"""

from __future__ import annotations

from .config import JumpTraceConfig
from .errors import ConfigurationError, NavigationFailure, NotFoundError
from .index import LocationEntry, LocationIndex, extract_locations
from .paths import normalize_path
from .session import JumpTraceSession
from .sync import SyncEngine, SyncMode


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


__all__ = [
    "ConfigurationError",
    "JumpTraceConfig",
    "JumpTraceSession",
    "LocationEntry",
    "LocationIndex",
    "NavigationFailure",
    "NotFoundError",
    "SyncEngine",
    "SyncMode",
    "extract_locations",
    "main",
    "normalize_path",
]
