"""Manifest store: the one JSON file per workspace that lists every plugin.

    <workspace>/.pluginkit/plugins-manifest.json
    {
      "plugins": [
        {"slug": "demo", "name": "Demo", "enabled": true, "location": "local", "path": "./demo"}
      ]
    }

Every write is a fresh read-modify-write of the whole file with no locking;
concurrent writers race and the last one wins.  A file that cannot be read or
parsed is treated as empty (with a warning) rather than failing the write.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from pluginkit.config import Settings, get_settings
from pluginkit.errors import ErrorKind, PluginKitError, PluginValidationError
from pluginkit.results import ScaffoldResult
from pluginkit.schema import LocalPlugin, RemotePlugin, entry_to_dict, parse_entry

logger = logging.getLogger(__name__)


def _empty() -> dict[str, Any]:
    return {"plugins": []}


def read_manifest_file(path: Path) -> dict[str, Any]:
    """Read a manifest leniently: missing or unreadable files yield an empty manifest."""
    if not path.exists():
        return _empty()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read manifest at %s, starting a new one: %s", path, e)
        return _empty()
    if not isinstance(data, dict) or not isinstance(data.get("plugins", []), list):
        logger.warning("Manifest at %s has an unexpected shape, starting a new one", path)
        return _empty()
    data.setdefault("plugins", [])
    return data


def write_manifest_file(path: Path, manifest: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")


def _slug_of(item: Any) -> str | None:
    return item.get("slug") if isinstance(item, dict) else None


class ManifestStore:
    """Owns the on-disk manifest for one workspace."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def path(self) -> Path:
        return self.settings.manifest_file()

    async def load(self) -> dict[str, Any]:
        return await asyncio.to_thread(read_manifest_file, self.path)

    async def load_entries(self) -> list[RemotePlugin | LocalPlugin]:
        """Validated view of the manifest; invalid entries are skipped."""
        manifest = await self.load()
        entries = []
        for index, item in enumerate(manifest["plugins"]):
            try:
                entries.append(parse_entry(item))
            except PluginValidationError as e:
                logger.warning("Skipping invalid manifest entry #%d: %s", index, e)
        return entries

    async def register(self, entry: RemotePlugin | LocalPlugin) -> ScaffoldResult:
        """Insert ``entry`` or replace the entry with the same slug in place."""
        try:
            entry = parse_entry(entry)
            path = self.path
            manifest = await asyncio.to_thread(read_manifest_file, path)

            record = entry_to_dict(entry)
            plugins = manifest["plugins"]
            for index, item in enumerate(plugins):
                if _slug_of(item) == entry.slug:
                    plugins[index] = record
                    break
            else:
                plugins.append(record)

            await asyncio.to_thread(write_manifest_file, path, manifest)
        except PluginKitError as e:
            return ScaffoldResult.failed(e)
        except OSError as e:
            logger.warning("Failed to write manifest for '%s': %s", entry.slug, e)
            return ScaffoldResult.failed(e, ErrorKind.IO)
        except Exception as e:
            logger.exception("Unexpected error registering plugin")
            return ScaffoldResult.failed(str(e) or "Unknown error registering plugin", ErrorKind.IO)

        logger.info("Registered plugin '%s' in %s", entry.slug, path)
        return ScaffoldResult.ok()

    async def unregister(self, slug: str) -> ScaffoldResult:
        """Remove the entry with ``slug``; the file is untouched when it is absent."""
        try:
            path = self.path
            manifest = await asyncio.to_thread(read_manifest_file, path)
            remaining = [item for item in manifest["plugins"] if _slug_of(item) != slug]
            if len(remaining) == len(manifest["plugins"]):
                return ScaffoldResult.failed(f"Plugin '{slug}' not found", ErrorKind.NOT_FOUND)
            manifest["plugins"] = remaining
            await asyncio.to_thread(write_manifest_file, path, manifest)
        except PluginKitError as e:
            return ScaffoldResult.failed(e)
        except OSError as e:
            logger.warning("Failed to update manifest removing '%s': %s", slug, e)
            return ScaffoldResult.failed(e, ErrorKind.IO)

        logger.info("Removed plugin '%s' from %s", slug, path)
        return ScaffoldResult.ok()
