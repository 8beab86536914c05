"""Helpers for summarizing registered plugins for terminal or chat output."""

from __future__ import annotations

from pluginkit.registry import Entry


def _source(entry: Entry) -> str:
    if entry.location == "remote":
        return f"remote {entry.package}"
    return f"local {entry.path}"


def format_plugins_summary(plugins: list[Entry]) -> str:
    """Render registered plugins as a compact markdown list."""
    if not plugins:
        return "No plugins registered. Run `pluginkit scaffold` to create one."

    enabled = sum(1 for p in plugins if p.enabled)
    lines = [f"Plugins ({len(plugins)}, {enabled} enabled):"]
    for entry in plugins:
        status = "enabled" if entry.enabled else "disabled"
        line = f"- `{entry.slug}`: {entry.name} ({status}, {_source(entry)})"
        if entry.description:
            line += f" - {entry.description}"
        lines.append(line)
    return "\n".join(lines)
