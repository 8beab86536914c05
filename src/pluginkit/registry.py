"""In-memory plugin registry.

Indexes a manifest by slug for query/insert/update/remove without touching
storage.  Every mutation re-validates the resulting entry, and
``load_manifest`` is all-or-nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pluginkit.errors import PluginValidationError
from pluginkit.results import OperationResult
from pluginkit.schema import (
    LocalPlugin,
    PluginManifest,
    RemotePlugin,
    entry_to_dict,
    parse_entry,
    parse_manifest,
)

logger = logging.getLogger(__name__)

Entry = RemotePlugin | LocalPlugin

_WIRE_NAMES = {"role_definition": "roleDefinition", "custom_instructions": "customInstructions"}


class PluginRegistry:
    """Ordered ``slug -> entry`` index over a manifest."""

    def __init__(self, manifest: PluginManifest | Iterable[Entry] | None = None):
        self._plugins: dict[str, Entry] = {}
        self._configuration: dict[str, Any] = {}
        if isinstance(manifest, PluginManifest):
            manifest = manifest.plugins
        for entry in manifest or ():
            self._plugins[entry.slug] = entry

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, slug: object) -> bool:
        return slug in self._plugins

    def get_plugins(self) -> list[Entry]:
        return list(self._plugins.values())

    def get_plugin(self, slug: str) -> Entry | None:
        return self._plugins.get(slug)

    def has_plugin(self, slug: str) -> bool:
        return slug in self._plugins

    def get_manifest(self) -> PluginManifest:
        return PluginManifest(plugins=self.get_plugins())

    def install_plugin(self, candidate: Entry | Mapping[str, Any]) -> OperationResult:
        try:
            entry = parse_entry(candidate)
        except PluginValidationError as e:
            return OperationResult(success=False, error=str(e))

        if entry.slug in self._plugins:
            return OperationResult(
                success=False, error=f"Plugin with slug '{entry.slug}' is already installed"
            )
        self._plugins[entry.slug] = entry
        return OperationResult(success=True, plugin=entry)

    def upsert(self, entry: Entry) -> None:
        """Replace the entry with the same slug in place, or append it."""
        self._plugins[entry.slug] = entry

    def update_plugin(self, slug: str, updates: Mapping[str, Any]) -> OperationResult:
        """Merge ``updates`` over the stored entry and re-validate.

        The slug never changes.  A ``None`` value removes that field, which is
        how a caller clears ``path`` when switching a plugin to ``remote``.
        """
        existing = self._plugins.get(slug)
        if existing is None:
            return OperationResult(success=False, error=f"Plugin with slug '{slug}' not found")

        merged = entry_to_dict(existing)
        for key, value in updates.items():
            key = _WIRE_NAMES.get(key, key)
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        merged["slug"] = existing.slug

        try:
            updated = parse_entry(merged)
        except PluginValidationError as e:
            return OperationResult(success=False, error=str(e))

        self._plugins[slug] = updated
        return OperationResult(success=True, plugin=updated)

    def remove_plugin(self, slug: str) -> OperationResult:
        if slug not in self._plugins:
            return OperationResult(success=False, error=f"Plugin with slug '{slug}' not found")
        removed = self._plugins.pop(slug)
        return OperationResult(success=True, plugin=removed)

    def enable_plugin(self, slug: str) -> OperationResult:
        return self.update_plugin(slug, {"enabled": True})

    def disable_plugin(self, slug: str) -> OperationResult:
        return self.update_plugin(slug, {"enabled": False})

    def load_manifest(self, raw: Any) -> OperationResult:
        """Replace the registry contents with ``raw``, or change nothing on error."""
        try:
            manifest = parse_manifest(raw)
        except PluginValidationError as e:
            logger.warning("Rejected manifest load: %s", e)
            return OperationResult(success=False, error=str(e))

        self._plugins = {entry.slug: entry for entry in manifest.plugins}
        return OperationResult(success=True, plugins=list(manifest.plugins))

    def restore(self, entries: Iterable[Entry]) -> None:
        """Reset to a previously captured ``get_plugins()`` snapshot."""
        self._plugins = {entry.slug: entry for entry in entries}

    # ─── Configuration ──────────────────────────────────────────────────

    def set_configuration(self, options: Mapping[str, Any]) -> None:
        """Shallow-merge ``options`` over the current registry options."""
        self._configuration = {**self._configuration, **options}

    def get_configuration(self) -> dict[str, Any]:
        return dict(self._configuration)
