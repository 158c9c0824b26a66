"""
Settings for the Azure DevOps build adapter.

Hosts usually hand the adapter a mapping of their own stored settings. For the
command line, :func:`load_settings` reads the ``[azure_devops]`` table of a TOML
file. The lookup order is:

1. Explicit ``path`` argument.
2. ``BUILDWATCH_SETTINGS_PATH`` environment variable.
3. ``.buildwatch/settings.toml`` relative to the current directory, then to the
   project root.

``BUILDWATCH_PROJECT_URL``, ``BUILDWATCH_API_TOKEN`` and
``BUILDWATCH_DEFINITION_FILTER`` override values read from the file.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

SETTINGS_SECTION = "azure_devops"

_KEY_ALIASES: Mapping[str, tuple[str, ...]] = {
    "project_url": ("project_url", "ProjectUrl"),
    "api_token": ("api_token", "ApiToken"),
    "build_definition_filter": ("build_definition_filter", "BuildDefinitionFilter"),
}
_ENV_OVERRIDES: Mapping[str, str] = {
    "project_url": "BUILDWATCH_PROJECT_URL",
    "api_token": "BUILDWATCH_API_TOKEN",
    "build_definition_filter": "BUILDWATCH_DEFINITION_FILTER",
}
_VARIABLE_PATTERN = re.compile(r"\$(?:\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))")


@dataclass(frozen=True, slots=True)
class IntegrationSettings:
    """Connection settings of one Azure DevOps project."""

    project_url: str = ""
    api_token: str = field(default="", repr=False)
    build_definition_filter: str = ""

    @classmethod
    def read_from(cls, source: Mapping[str, Any]) -> "IntegrationSettings":
        """Build settings from a host mapping, accepting snake_case or CamelCase keys."""

        def _extract(name: str) -> str:
            for key in _KEY_ALIASES[name]:
                value = source.get(key)
                if isinstance(value, str):
                    return value
            return ""

        return cls(
            project_url=_extract("project_url").strip(),
            api_token=_extract("api_token").strip(),
            build_definition_filter=_extract("build_definition_filter").strip(),
        )

    def is_valid(self) -> bool:
        return bool(self.project_url.strip()) and bool(self.api_token.strip())


@dataclass(slots=True)
class SettingsBundle:
    """Settings together with the file they came from, if any."""

    source_path: Optional[Path]
    settings: IntegrationSettings


def expand_variables(text: str, variables: Mapping[str, str]) -> str:
    """
    Replace ``$NAME`` and ``${NAME}`` placeholders with values from ``variables``.

    Unknown placeholders are left untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group("braced") or match.group("bare")
        return variables.get(name, match.group(0))

    return _VARIABLE_PATTERN.sub(_replace, text)


def _discover_project_root() -> Optional[Path]:
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").is_file():
            return parent
    return None


def _candidate_paths() -> Iterable[Path]:
    env_override = os.getenv("BUILDWATCH_SETTINGS_PATH")
    if env_override:
        yield Path(env_override).expanduser()

    roots = [Path.cwd()]
    project_root = _discover_project_root()
    if project_root and project_root not in roots:
        roots.append(project_root)
    for root in roots:
        yield root / ".buildwatch" / "settings.toml"


def _load_section(path: Path) -> Dict[str, Any]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    section = raw.get(SETTINGS_SECTION, {})
    return dict(section) if isinstance(section, dict) else {}


def _apply_env_overrides(values: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(values)
    for name, env_name in _ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value:
            merged[name] = env_value
    return merged


def load_settings(path: Optional[Path] = None, *, strict: bool = False) -> SettingsBundle:
    """
    Locate and parse the settings file.

    Parameters
    ----------
    path:
        Explicit settings file. Skips discovery when given.
    strict:
        When ``True`` raise ``FileNotFoundError`` if no settings file exists.
        Otherwise fall back to environment variables alone.
    """

    candidates = [path] if path is not None else list(_candidate_paths())
    for candidate in candidates:
        if candidate.is_file():
            values = _apply_env_overrides(_load_section(candidate))
            return SettingsBundle(source_path=candidate, settings=IntegrationSettings.read_from(values))

    if strict:
        raise FileNotFoundError("No settings file found. Configure BUILDWATCH_SETTINGS_PATH or .buildwatch/settings.toml.")

    return SettingsBundle(source_path=None, settings=IntegrationSettings.read_from(_apply_env_overrides({})))
