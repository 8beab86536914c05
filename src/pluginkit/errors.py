"""Error taxonomy shared by the validator, pipeline, store and facade.

Modules raise these internally; phase and operation boundaries catch them
and convert them into result values tagged with an ``ErrorKind``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    ENVIRONMENT = "environment"
    IO = "io"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ValidationIssue:
    """One problem with one field of a plugin entry or manifest."""

    field: str
    message: str

    def __str__(self) -> str:
        if not self.field:
            return self.message
        return f"{self.field}: {self.message}"


class PluginKitError(Exception):
    """Base class for all pluginkit errors."""

    kind: ErrorKind = ErrorKind.IO


class PluginValidationError(PluginKitError, ValueError):
    """A plugin entry or manifest is malformed or contradictory."""

    kind = ErrorKind.VALIDATION

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = list(issues)
        super().__init__("; ".join(str(issue) for issue in self.issues) or "Invalid plugin")

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


class WorkspaceNotFoundError(PluginKitError):
    kind = ErrorKind.ENVIRONMENT

    def __init__(self, message: str = "No workspace folder is open"):
        super().__init__(message)


class TemplateError(PluginKitError):
    """A template file exists but cannot be used."""

    kind = ErrorKind.IO

    def __init__(self, path, message: str | None = None):
        self.path = path
        super().__init__(message or f"Template file is unreadable: {path}")


class TemplateNotFoundError(TemplateError, FileNotFoundError):
    def __init__(self, path):
        super().__init__(path, f"Template file not found: {path}")


TIMEOUT_MESSAGE = "Operation timed out. The plugin may still be created in the background."
