"""Read-only view of assistant settings files.

Finds the global, project, and project-local ``settings.json`` files and
formats their parsed content into display lines for the settings screen.
Formatting is presentation-only; schemas are not validated.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

ORDERED_KEYS: tuple[str, ...] = (
    "model",
    "defaultMode",
    "thinking",
    "permissions",
    "mcpServers",
    "hooks",
    "plugins",
    "env",
)
PERMISSION_CATEGORIES: tuple[str, ...] = ("allow", "ask", "deny")
SECTION_MARKER = "▾"


@dataclass(frozen=True)
class SettingsFile:
    label: str
    path: Path
    value: object
    invalid: bool = False


@dataclass
class SettingsCollection:
    files: list[SettingsFile] = field(default_factory=list)


def load_settings_file(label: str, path: Path) -> SettingsFile | None:
    """Return parsed settings for ``path``; ``None`` when the file cannot be read."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return None
    try:
        value = json.loads(text)
    except ValueError:
        return SettingsFile(label=label, path=path, value=f"(invalid JSON: {path})", invalid=True)
    return SettingsFile(label=label, path=path, value=value)


def discover_settings_files(project: Path, home: Path | None = None) -> SettingsCollection:
    """Collect Global, Project, and Project Local settings that exist."""
    if home is None:
        home = Path.home()
    candidates: list[tuple[str, Path]] = [("Global", home / ".claude" / "settings.json")]
    candidates.append(("Project", project / ".claude" / "settings.json"))
    candidates.append(("Project Local", project / ".claude" / "settings.local.json"))

    collection = SettingsCollection()
    for label, path in candidates:
        loaded = load_settings_file(label, path)
        if loaded is not None:
            collection.files.append(loaded)
    return collection


def display_scalar(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"))


def format_inline(value: object) -> str:
    if isinstance(value, list):
        return "[" + ", ".join(display_scalar(item) for item in value) + "]"
    return display_scalar(value)


def _format_permissions(value: object, lines: list[str]) -> None:
    if not isinstance(value, dict):
        lines.append(f"  Permissions: {format_inline(value)}")
        return
    for category in PERMISSION_CATEGORIES:
        items = value.get(category)
        if not isinstance(items, list) or not items:
            continue
        lines.append(f"  Permissions ({category}):")
        lines.extend(f"    {display_scalar(item)}" for item in items)
    for key, item in value.items():
        if key not in PERMISSION_CATEGORIES:
            lines.append(f"  Permissions ({key}): {format_inline(item)}")


def _format_mcp_servers(value: object, lines: list[str]) -> None:
    if not isinstance(value, dict):
        lines.append(f"  MCP Servers: {format_inline(value)}")
        return
    lines.append("  MCP Servers:")
    for name, server in value.items():
        if isinstance(server, dict) and "command" in server:
            args = server.get("args")
            arg_text = " ".join(display_scalar(arg) for arg in args) if isinstance(args, list) else ""
            command = display_scalar(server["command"])
            lines.append(f"    {name}: {command} {arg_text}" if arg_text else f"    {name}: {command}")
        else:
            lines.append(f"    {name}: {format_inline(server)}")


def _format_hooks(value: object, lines: list[str]) -> None:
    if not isinstance(value, dict):
        lines.append(f"  Hooks: {format_inline(value)}")
        return
    lines.append("  Hooks:")
    for event, config in value.items():
        if isinstance(config, list):
            for hook in config:
                if isinstance(hook, dict) and "command" in hook:
                    command = display_scalar(hook["command"])
                else:
                    command = format_inline(hook)
                lines.append(f"    {event}: {command}")
        else:
            lines.append(f"    {event}: {format_inline(config)}")


def _format_plugins(value: object, lines: list[str]) -> None:
    if not isinstance(value, list):
        lines.append(f"  Plugins: {format_inline(value)}")
        return
    lines.append("  Plugins:")
    lines.extend(f"    {display_scalar(plugin)}" for plugin in value)


def _format_env(value: object, lines: list[str]) -> None:
    if not isinstance(value, dict):
        lines.append(f"  Env: {format_inline(value)}")
        return
    lines.append("  Env:")
    lines.extend(f"    {key}={display_scalar(item)}" for key, item in value.items())


def _format_key_value(key: str, value: object, lines: list[str]) -> None:
    if key == "model":
        lines.append(f"  Model: {display_scalar(value)}")
    elif key == "defaultMode":
        lines.append(f"  Default Mode: {display_scalar(value)}")
    elif key == "thinking":
        lines.append(f"  Thinking: {display_scalar(value)}")
    elif key == "permissions":
        _format_permissions(value, lines)
    elif key == "mcpServers":
        _format_mcp_servers(value, lines)
    elif key == "hooks":
        _format_hooks(value, lines)
    elif key == "plugins":
        _format_plugins(value, lines)
    elif key == "env":
        _format_env(value, lines)
    else:
        lines.append(f"  {key}: {format_inline(value)}")


def format_settings(collection: SettingsCollection) -> list[str]:
    """Format every settings file as a headed section, blank line between sections."""
    lines: list[str] = []
    for idx, settings_file in enumerate(collection.files):
        if idx > 0:
            lines.append("")
        lines.append(f"{SECTION_MARKER} {settings_file.label} ({settings_file.path})")

        value = settings_file.value
        if settings_file.invalid:
            lines.append(f"  {value}")
            continue
        if not isinstance(value, dict):
            lines.append("  (not a JSON object)")
            continue

        for key in ORDERED_KEYS:
            if key in value:
                _format_key_value(key, value[key], lines)
        for key, item in value.items():
            if key not in ORDERED_KEYS:
                _format_key_value(key, item, lines)
    return lines


def settings_lines(project: Path, home: Path | None = None) -> list[str]:
    """Return display lines for the settings screen, with a hint when none exist."""
    lines = format_settings(discover_settings_files(project, home))
    if not lines:
        return ["No settings files found.", "", f"Looked in ~/.claude and {project / '.claude'}"]
    return lines
