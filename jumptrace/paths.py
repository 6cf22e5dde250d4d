"""Path canonicalization for index keys.

Keys produced from log tokens and from editor documents must compare equal
regardless of separator style or drive-letter casing.
"""

from __future__ import annotations

import re
import sys

_DRIVE_PREFIX_RE = re.compile(r"^([a-zA-Z]):(/.*)?$")


def is_windows_platform(platform: str | None = None) -> bool:
    """Return whether ``platform`` (default ``sys.platform``) is Windows."""
    return (platform or sys.platform).startswith("win")


def normalize_path(path: str | None, *, windows: bool | None = None) -> str | None:
    """Return ``path`` with forward slashes and, on Windows, an upper-case drive.

    ``windows`` overrides platform detection. Empty input returns ``None``.
    The result is a fixed point: normalizing it again returns it unchanged.
    """
    if not path:
        return None

    normalized = path.replace("\\", "/")
    if windows is None:
        windows = is_windows_platform()
    if windows:
        match = _DRIVE_PREFIX_RE.match(normalized)
        if match:
            return match.group(1).upper() + ":" + (match.group(2) or "")
    return normalized


__all__ = ["is_windows_platform", "normalize_path"]
