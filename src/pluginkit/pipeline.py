"""Three-phase scaffold pipeline.

    IDLE -> INITIALIZING -> GENERATING_CONTENT -> REGISTERING -> COMPLETE
                 |                 |     \\
                 v                 v      -> PARTIAL_FAILURE -> REGISTERING
               FAILED            FAILED

Phases are separate calls keyed by the plugin slug so a caller can resume
after any failure (or after giving up on a phase that took too long) without
repeating earlier phases:

  1. ``initialize``        create ``<plugins_dir>/<slug>/``; idempotent
  2. ``generate_content``  render and write the four files; each file fails alone
  3. ``register``          upsert the entry into the manifest; idempotent

Files written in phase 2 are never rolled back.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from pathlib import Path

from pluginkit.config import Settings, get_settings
from pluginkit.errors import ErrorKind, PluginKitError
from pluginkit.renderer import FILE_SPECS, FileSpec, render_file
from pluginkit.results import ProgressEvent, ScaffoldResult
from pluginkit.schema import LocalPlugin, RemotePlugin
from pluginkit.store import ManifestStore

logger = logging.getLogger(__name__)

Entry = RemotePlugin | LocalPlugin


class ScaffoldState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    GENERATING_CONTENT = "generating_content"
    PARTIAL_FAILURE = "partial_failure"
    REGISTERING = "registering"
    COMPLETE = "complete"
    FAILED = "failed"


ProgressCallback = Callable[[ProgressEvent], None]
Phase = Callable[[Entry], Awaitable[ScaffoldResult]]


async def bounded(phase: Phase, entry: Entry, timeout: float | None) -> ScaffoldResult:
    """Await one phase, raising ``TimeoutError`` if it runs past ``timeout`` seconds."""
    if timeout is None:
        return await phase(entry)
    return await asyncio.wait_for(phase(entry), timeout)


def _write_file(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


class ScaffoldPipeline:
    """Scaffolds one plugin into the configured workspace.

    State and progress belong to a single run, so concurrent runs each need
    their own pipeline.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: ManifestStore | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or ManifestStore(self.settings)
        self.on_progress = on_progress
        self.state = ScaffoldState.IDLE
        self.progress: list[ProgressEvent] = []

    # ─── Progress ───────────────────────────────────────────────────────

    def report(self, message: str, percent: int) -> None:
        event = ProgressEvent(message, percent)
        self.progress.append(event)
        logger.info("[%3d%%] %s", percent, message)
        if self.on_progress is not None:
            self.on_progress(event)

    def _fail(self, result: ScaffoldResult) -> ScaffoldResult:
        self.state = ScaffoldState.FAILED
        self.report(f"Error: {result.error}", self.progress[-1].percent if self.progress else 0)
        return result

    # ─── Phase 1 ────────────────────────────────────────────────────────

    async def initialize(self, entry: Entry) -> ScaffoldResult:
        """Create the plugin directory and any missing ancestors."""
        self.state = ScaffoldState.INITIALIZING
        try:
            plugin_dir = self.settings.plugin_dir(entry.slug)
            self.report(
                f"Setting up plugin directory in {self.settings.plugins_dir}/{entry.slug}/", 20
            )
            await asyncio.to_thread(plugin_dir.mkdir, parents=True, exist_ok=True)
        except PluginKitError as e:
            return self._fail(ScaffoldResult.failed(e))
        except OSError as e:
            return self._fail(ScaffoldResult.failed(f"Failed to create plugin directory: {e}"))

        self.report("Directory created", 30)
        return ScaffoldResult.ok()

    # ─── Phase 2 ────────────────────────────────────────────────────────

    async def _generate_one(self, file_spec: FileSpec, entry: Entry, plugin_dir: Path) -> bool:
        try:
            content = render_file(file_spec, entry, self.settings.templates())
            await asyncio.to_thread(_write_file, plugin_dir / file_spec.output, content)
        except (PluginKitError, OSError) as e:
            logger.warning("Skipped %s for '%s': %s", file_spec.output, entry.slug, e)
            return False
        return True

    async def generate_content(self, entry: Entry) -> ScaffoldResult:
        """Render and write every canonical file; one failing file does not stop the rest."""
        self.state = ScaffoldState.GENERATING_CONTENT
        try:
            plugin_dir = self.settings.plugin_dir(entry.slug)
        except PluginKitError as e:
            return self._fail(ScaffoldResult.failed(e))

        self.report("Generating plugin files...", 40)
        written: list[str] = []
        failed: list[str] = []
        step = 40 // len(FILE_SPECS)
        for index, file_spec in enumerate(FILE_SPECS, start=1):
            if await self._generate_one(file_spec, entry, plugin_dir):
                written.append(file_spec.output)
                self.report(f"Created {file_spec.output}", 40 + step * index)
            else:
                failed.append(file_spec.output)

        if not written:
            return self._fail(
                ScaffoldResult.failed(
                    f"Failed to create plugin content: {', '.join(failed)}", ErrorKind.IO
                )
            )
        if failed:
            self.state = ScaffoldState.PARTIAL_FAILURE
            missing = ", ".join(failed)
            self.report(f"Warning: some plugin files were not created: {missing}", 80)
            return ScaffoldResult.ok(
                partial_success=True,
                error=f"Failed to create: {missing}",
                written=written,
            )
        return ScaffoldResult.ok(written=written)

    # ─── Phase 3 ────────────────────────────────────────────────────────

    async def register(self, entry: Entry) -> ScaffoldResult:
        """Upsert the entry into the manifest. Safe to repeat."""
        self.state = ScaffoldState.REGISTERING
        self.report("Registering plugin in manifest...", 90)
        result = await self.store.register(entry)
        if not result.success:
            result.partial_success = True
            return self._fail(result)

        self.state = ScaffoldState.COMPLETE
        self.report("Plugin registration completed!", 100)
        return result

    # ─── Whole run ──────────────────────────────────────────────────────

    async def run(self, entry: Entry, phase_timeout: float | None = None) -> ScaffoldResult:
        """Run all three phases in order and combine their outcomes.

        With ``phase_timeout`` each phase is bounded separately and a phase that
        overruns raises ``TimeoutError``; its effects may still land, so the
        caller decides how to recover.  The result carries this run's progress.
        """
        self.progress = []
        self.report(f"Creating plugin: {entry.name}", 5)

        init = await bounded(self.initialize, entry, phase_timeout)
        if not init.success:
            return self.with_progress(init)

        content = await bounded(self.generate_content, entry, phase_timeout)
        if not content.success:
            return self.with_progress(content)

        registered = await bounded(self.register, entry, phase_timeout)
        if not registered.success:
            registered.written = content.written
            return self.with_progress(registered)

        return self.with_progress(
            ScaffoldResult.ok(
                partial_success=content.partial_success,
                error=content.error,
                written=content.written,
            )
        )

    def with_progress(self, result: ScaffoldResult) -> ScaffoldResult:
        result.progress = list(self.progress)
        return result
