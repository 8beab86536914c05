"""Result values returned across the public boundary instead of exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pluginkit.errors import ErrorKind, PluginKitError
from pluginkit.schema import LocalPlugin, RemotePlugin, entry_to_dict


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    percent: int


@dataclass
class ScaffoldResult:
    """Outcome of one scaffold phase or of a whole scaffold run.

    ``partial_success`` with ``success=False`` means files may be on disk while
    the manifest does not list the plugin yet; retry registration only.
    ``partial_success`` with ``success=True`` comes from content generation
    when some, but not all, files were written.
    """

    success: bool
    partial_success: bool | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    written: list[str] = field(default_factory=list)
    progress: list[ProgressEvent] = field(default_factory=list)

    @classmethod
    def ok(cls, **kwargs: Any) -> ScaffoldResult:
        return cls(success=True, **kwargs)

    @classmethod
    def failed(
        cls, exc: BaseException | str, kind: ErrorKind | None = None, **kwargs: Any
    ) -> ScaffoldResult:
        if isinstance(exc, PluginKitError):
            kind = kind or exc.kind
        return cls(success=False, error=str(exc), error_kind=kind or ErrorKind.IO, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.partial_success is not None:
            data["partialSuccess"] = self.partial_success
        if self.error is not None:
            data["error"] = self.error
        if self.error_kind is not None:
            data["errorKind"] = self.error_kind.value
        if self.written:
            data["written"] = list(self.written)
        if self.progress:
            data["progress"] = [
                {"message": event.message, "percent": event.percent} for event in self.progress
            ]
        return data


@dataclass
class OperationResult:
    """Outcome of a registry operation: ``{success, plugin?, plugins?, error?}``."""

    success: bool
    plugin: RemotePlugin | LocalPlugin | None = None
    plugins: list[RemotePlugin | LocalPlugin] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.plugin is not None:
            data["plugin"] = entry_to_dict(self.plugin)
        if self.plugins is not None:
            data["plugins"] = [entry_to_dict(p) for p in self.plugins]
        if self.error is not None:
            data["error"] = self.error
        return data
