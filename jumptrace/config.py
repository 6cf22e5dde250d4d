"""Configuration snapshot and persistent JSON settings helpers.

Settings arrive as a plain mapping (from the host, or from the JSON settings
file for the CLI) and are validated once into an immutable ``JumpTraceConfig``.
Reading the settings file is defensive: malformed or missing files yield ``{}``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .errors import ConfigurationError
from .patterns import LinePatterns

APP_NAME = "jumptrace"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

WORKSPACE_PLACEHOLDERS = ("$workspaceRoot", "$workspaceFolder")
DEFAULT_HIGHLIGHT_COLOR = "rgba(131, 247, 95, 0.3)"

REFERENCE_FILE_KEY = "referenceFilePath"
PATH_REGEX_KEY = "pathRegex"
SKIP_REGEX_KEY = "skipRegex"
HIGHLIGHT_COLOR_KEY = "highlightColor"


def load_settings(path: Path | None = None) -> dict[str, object]:
    """Load the persisted JSON settings object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    settings_path = path or CONFIG_PATH
    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(data: Mapping[str, object], path: Path | None = None) -> bool:
    """Persist settings as pretty-printed JSON, returning whether it worked."""
    settings_path = path or CONFIG_PATH
    try:
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        settings_path.write_text(json.dumps(dict(data), indent=2) + "\n", encoding="utf-8")
    except (OSError, TypeError, ValueError):
        return False
    return True


def _string_setting(settings: Mapping[str, object], key: str) -> str:
    """Return a string option, treating non-strings as unset."""
    value = settings.get(key)
    return value if isinstance(value, str) else ""


def expand_workspace_path(raw: str, workspace_root: Path | None) -> Path | None:
    """Resolve ``raw`` into a path, expanding a leading workspace placeholder.

    Blank input yields ``None``. A placeholder without a workspace root is a
    configuration error.
    """
    value = raw.strip()
    if not value:
        return None
    for placeholder in WORKSPACE_PLACEHOLDERS:
        if value.startswith(placeholder):
            if workspace_root is None:
                raise ConfigurationError(
                    f"Cannot expand {placeholder} in {value!r}: no workspace is open"
                )
            remainder = value[len(placeholder):].lstrip("/\\")
            return workspace_root / remainder if remainder else workspace_root
    return Path(value).expanduser()


@dataclass(frozen=True)
class JumpTraceConfig:
    """Validated configuration; replaced wholesale on reload."""

    reference_file: Path | None
    patterns: LinePatterns
    highlight_color: str = DEFAULT_HIGHLIGHT_COLOR
    path_regex_source: str = ""
    skip_regex_source: str = ""

    @classmethod
    def from_settings(
        cls,
        settings: Mapping[str, object],
        *,
        workspace_root: Path | None = None,
        platform: str | None = None,
    ) -> JumpTraceConfig:
        """Build a config from raw option values.

        Raises ``ConfigurationError`` for malformed regexes or an unresolved
        workspace placeholder.
        """
        path_regex = _string_setting(settings, PATH_REGEX_KEY)
        skip_regex = _string_setting(settings, SKIP_REGEX_KEY)
        highlight_color = _string_setting(settings, HIGHLIGHT_COLOR_KEY).strip()
        return cls(
            reference_file=expand_workspace_path(
                _string_setting(settings, REFERENCE_FILE_KEY), workspace_root
            ),
            patterns=LinePatterns.compile(path_regex, skip_regex, platform=platform),
            highlight_color=highlight_color or DEFAULT_HIGHLIGHT_COLOR,
            path_regex_source=path_regex,
            skip_regex_source=skip_regex,
        )

    def require_reference_file(self) -> Path:
        """Return the reference file or raise when none is configured."""
        if self.reference_file is None:
            raise ConfigurationError(f"{REFERENCE_FILE_KEY} is not configured")
        return self.reference_file


__all__ = [
    "CONFIG_PATH",
    "DEFAULT_HIGHLIGHT_COLOR",
    "JumpTraceConfig",
    "expand_workspace_path",
    "load_settings",
    "save_settings",
]
