"""Request/response facade used by hosts (HTTP router, CLI, UI shells).

Every method returns a result value; nothing raises past this boundary.
Raw dict candidates are validated first and never reach storage when invalid.

The facade is also the orchestrating caller for timeouts: ``scaffold`` can
bound each phase with ``phase_timeout``.  When a phase times out its effects
may or may not have happened, so registration is attempted anyway (it is an
idempotent upsert) and the result is reported as ``ErrorKind.TIMEOUT``
rather than as a hard failure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pluginkit.config import Settings, get_settings
from pluginkit.errors import TIMEOUT_MESSAGE, ErrorKind, PluginKitError, PluginValidationError
from pluginkit.pipeline import ProgressCallback, ScaffoldPipeline, bounded
from pluginkit.registry import Entry, PluginRegistry
from pluginkit.results import OperationResult, ScaffoldResult
from pluginkit.schema import PluginManifest, validate_entry, validate_manifest
from pluginkit.store import ManifestStore

logger = logging.getLogger(__name__)

Candidate = Entry | Mapping[str, Any]


class PluginService:
    def __init__(
        self,
        settings: Settings | None = None,
        store: ManifestStore | None = None,
        registry: PluginRegistry | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or ManifestStore(self.settings)
        self.registry = registry if registry is not None else PluginRegistry()
        self.on_progress = on_progress
        self._loaded = registry is not None

    # ─── Validation ─────────────────────────────────────────────────────

    def validate_entry(self, candidate: Any) -> Entry | PluginValidationError:
        return validate_entry(candidate)

    def validate_manifest(self, candidate: Any) -> PluginManifest | PluginValidationError:
        return validate_manifest(candidate)

    # ─── Scaffold phases ────────────────────────────────────────────────

    def _pipeline(self) -> ScaffoldPipeline:
        return ScaffoldPipeline(self.settings, self.store, self.on_progress)

    async def scaffold_init(self, entry: Candidate) -> ScaffoldResult:
        parsed = validate_entry(entry)
        if isinstance(parsed, PluginValidationError):
            return ScaffoldResult.failed(parsed)
        pipeline = self._pipeline()
        return pipeline.with_progress(await pipeline.initialize(parsed))

    async def scaffold_content(self, entry: Candidate) -> ScaffoldResult:
        parsed = validate_entry(entry)
        if isinstance(parsed, PluginValidationError):
            return ScaffoldResult.failed(parsed)
        pipeline = self._pipeline()
        return pipeline.with_progress(await pipeline.generate_content(parsed))

    async def register_plugin(self, entry: Candidate) -> ScaffoldResult:
        parsed = validate_entry(entry)
        if isinstance(parsed, PluginValidationError):
            return ScaffoldResult.failed(parsed)
        pipeline = self._pipeline()
        result = await pipeline.register(parsed)
        if result.success:
            self.registry.upsert(parsed)
        return pipeline.with_progress(result)

    async def scaffold(
        self, entry: Candidate, phase_timeout: float | None = None
    ) -> ScaffoldResult:
        """Run init, content and registration in order, each optionally time-bounded."""
        parsed = validate_entry(entry)
        if isinstance(parsed, PluginValidationError):
            return ScaffoldResult.failed(parsed)

        pipeline = self._pipeline()
        try:
            result = await pipeline.run(parsed, phase_timeout)
        except TimeoutError:
            return await self._recover_from_timeout(pipeline, parsed, phase_timeout)
        if result.success:
            self.registry.upsert(parsed)
        return result

    async def _recover_from_timeout(
        self, pipeline: ScaffoldPipeline, entry: Entry, timeout: float | None
    ) -> ScaffoldResult:
        logger.warning("Scaffolding '%s' timed out; retrying registration", entry.slug)
        pipeline.report("Warning: operation took longer than expected.", 90)
        try:
            recovered = await bounded(pipeline.register, entry, timeout)
        except TimeoutError:
            recovered = ScaffoldResult.failed("registration timed out", ErrorKind.TIMEOUT)

        if recovered.success:
            self.registry.upsert(entry)
            detail = "The manifest entry was registered; generated files are unconfirmed."
        else:
            detail = f"Registration retry failed: {recovered.error}"
        plugin_dir = f"{self.settings.plugins_dir}/{entry.slug}/"
        pipeline.report(f"You can check the {plugin_dir} directory to verify.", 90)
        return pipeline.with_progress(
            ScaffoldResult(
                success=False,
                partial_success=True,
                error=f"{TIMEOUT_MESSAGE} {detail}",
                error_kind=ErrorKind.TIMEOUT,
            )
        )

    # ─── Registry ───────────────────────────────────────────────────────

    async def refresh(self) -> OperationResult:
        """Reload the in-memory registry from the manifest file."""
        try:
            entries = await self.store.load_entries()
        except PluginKitError as e:
            logger.warning("Could not load manifest: %s", e)
            return OperationResult(success=False, error=str(e))
        except Exception as e:
            logger.exception("Failed to load manifest")
            return OperationResult(success=False, error=str(e))
        self.registry.restore(entries)
        self._loaded = True
        return OperationResult(success=True, plugins=entries)

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.refresh()

    async def get_plugins(self) -> list[Entry]:
        await self._ensure_loaded()
        return self.registry.get_plugins()

    async def get_plugin(self, slug: str) -> Entry | None:
        await self._ensure_loaded()
        return self.registry.get_plugin(slug)

    async def _write_through(
        self, change: Callable[[], OperationResult], remove: bool = False
    ) -> OperationResult:
        await self._ensure_loaded()
        snapshot = self.registry.get_plugins()
        result = change()
        if not result.success:
            return result

        if remove:
            stored = await self.store.unregister(result.plugin.slug)
            if stored.error_kind is ErrorKind.NOT_FOUND:
                stored = ScaffoldResult.ok()
        else:
            stored = await self.store.register(result.plugin)
        if not stored.success:
            self.registry.restore(snapshot)
            return OperationResult(success=False, error=stored.error)
        return result

    async def install_plugin(self, candidate: Candidate) -> OperationResult:
        return await self._write_through(lambda: self.registry.install_plugin(candidate))

    async def update_plugin(self, slug: str, fields: Mapping[str, Any]) -> OperationResult:
        return await self._write_through(lambda: self.registry.update_plugin(slug, fields))

    async def remove_plugin(self, slug: str) -> OperationResult:
        result = await self._write_through(lambda: self.registry.remove_plugin(slug), remove=True)
        if result.success:
            return OperationResult(success=True)
        return result

    async def enable_plugin(self, slug: str) -> OperationResult:
        return await self._write_through(lambda: self.registry.enable_plugin(slug))

    async def disable_plugin(self, slug: str) -> OperationResult:
        return await self._write_through(lambda: self.registry.disable_plugin(slug))

    def load_manifest(self, raw: Any) -> OperationResult:
        """Replace the in-memory registry with ``raw`` (all-or-nothing, not persisted)."""
        result = self.registry.load_manifest(raw)
        if result.success:
            self._loaded = True
        return result

    def get_configuration(self) -> dict[str, Any]:
        return self.registry.get_configuration()

    def set_configuration(self, options: Mapping[str, Any]) -> dict[str, Any]:
        """Merge ``options`` into the registry's configuration and return the result."""
        self.registry.set_configuration(options)
        return self.registry.get_configuration()
