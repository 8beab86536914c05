"""Plugin entry and manifest schema.

A plugin entry is a tagged union on ``location``::

    {"slug": "demo", "name": "Demo", "location": "local", "path": "./demo"}
    {"slug": "demo", "name": "Demo", "location": "remote", "package": "demo-pkg"}

Remote entries must not carry ``path`` and local entries must not carry
``package``; both variants reject unknown keys.  Validation is pure: nothing
here touches the filesystem.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from pluginkit.errors import PluginValidationError, ValidationIssue

SLUG_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

_LOCATIONS = ("remote", "local")
_FIELD_RANK = {"slug": 0, "name": 1, "location": 2, "package": 3, "path": 3}


def is_valid_slug(slug: str) -> bool:
    return bool(SLUG_RE.match(slug))


def slugify(text: str) -> str:
    """Convert free text into a slug (``"My Plugin!"`` -> ``"my-plugin"``)."""
    slug = text.strip().lower()
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]+", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


class _PluginBase(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, strict=True, frozen=True)

    slug: str
    name: str
    enabled: bool = True
    description: str | None = None
    role_definition: str | None = Field(default=None, alias="roleDefinition")
    custom_instructions: str | None = Field(default=None, alias="customInstructions")
    groups: list[str] | None = None

    @field_validator("slug")
    @classmethod
    def _check_slug(cls, value: str) -> str:
        if not value:
            raise ValueError("slug is required")
        if not is_valid_slug(value):
            raise ValueError("Slug must contain only lowercase letters, numbers, and hyphens")
        return value

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name is required")
        return value


class RemotePlugin(_PluginBase):
    """Plugin installed from a package reference."""

    location: Literal["remote"]
    package: str

    @field_validator("package")
    @classmethod
    def _check_package(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("package is required for remote plugins")
        return value


class LocalPlugin(_PluginBase):
    """Plugin loaded from a filesystem path."""

    location: Literal["local"]
    path: str

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("path is required for local plugins")
        return value


PluginEntry = Annotated[Union[RemotePlugin, LocalPlugin], Field(discriminator="location")]


class PluginManifest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    plugins: list[PluginEntry] = Field(default_factory=list)


_ENTRY_ADAPTER: TypeAdapter = TypeAdapter(PluginEntry)


# ─── Error translation ──────────────────────────────────────────────────


def _issue_from_error(err: dict[str, Any], prefix: tuple = ()) -> ValidationIssue:
    raw_loc = tuple(err.get("loc", ()))
    tag = raw_loc[0] if raw_loc and raw_loc[0] in _LOCATIONS else None
    loc = prefix + (raw_loc[1:] if tag else raw_loc)
    field = ".".join(str(part) for part in loc)
    leaf = str(loc[-1]) if loc else ""
    kind = err.get("type", "")

    if kind == "missing":
        message = f"{leaf} is required"
    elif kind == "extra_forbidden" and leaf in ("path", "package") and tag:
        message = f"{tag.capitalize()} plugins cannot have a {leaf} field"
    elif kind == "extra_forbidden":
        message = f"Unknown field '{leaf}'"
    elif kind == "value_error":
        message = str(err.get("ctx", {}).get("error", err.get("msg", "")))
    elif kind in ("union_tag_not_found", "union_tag_invalid"):
        field = ".".join(str(part) for part in (*loc, "location"))
        message = "location must be 'remote' or 'local'"
    elif kind in ("model_attributes_type", "model_type", "dict_type"):
        message = "Plugin entry must be an object"
    else:
        message = err.get("msg", "Invalid value")
    return ValidationIssue(field=field, message=message)


def _rank(issue: ValidationIssue) -> tuple:
    parts = issue.field.split(".")
    index = int(parts[1]) if len(parts) > 1 and parts[0] == "plugins" and parts[1].isdigit() else -1
    return (index, _FIELD_RANK.get(parts[-1], 9))


def _common_field_issues(candidate: dict[str, Any], prefix: tuple = ()) -> list[ValidationIssue]:
    """Check the shared fields when the location tag itself is unusable."""
    keys = set(_PluginBase.model_fields) | {"roleDefinition", "customInstructions"}
    common = {k: v for k, v in candidate.items() if k in keys}
    try:
        _PluginBase.model_validate(common)
    except PydanticValidationError as exc:
        return [_issue_from_error(err, prefix) for err in exc.errors()]
    return []


def _issues_from(
    exc: PydanticValidationError, candidate: Any, prefix: tuple = ()
) -> list[ValidationIssue]:
    issues = [_issue_from_error(err, prefix) for err in exc.errors()]
    tag_failed = any(
        err.get("type") in ("union_tag_not_found", "union_tag_invalid") for err in exc.errors()
    )
    if tag_failed and isinstance(candidate, dict):
        issues.extend(_common_field_issues(candidate, prefix))
    return issues


def _entry_issues(candidate: Any, prefix: tuple = ()) -> list[ValidationIssue]:
    try:
        _ENTRY_ADAPTER.validate_python(candidate)
    except PydanticValidationError as exc:
        return _issues_from(exc, candidate, prefix)
    return []


def _duplicate_issues(plugins: list[Any]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    for index, item in enumerate(plugins):
        slug = item.get("slug") if isinstance(item, dict) else getattr(item, "slug", None)
        if not isinstance(slug, str) or not slug:
            continue
        if slug in seen:
            issues.append(ValidationIssue(f"plugins.{index}.slug", f"duplicate slug '{slug}'"))
        seen.add(slug)
    return issues


# ─── Public API ─────────────────────────────────────────────────────────


def parse_entry(candidate: Any) -> RemotePlugin | LocalPlugin:
    """Validate ``candidate`` and return the typed entry, raising on failure."""
    if isinstance(candidate, (RemotePlugin, LocalPlugin)):
        return candidate
    try:
        return _ENTRY_ADAPTER.validate_python(candidate)
    except PydanticValidationError as exc:
        issues = _issues_from(exc, candidate)
    raise PluginValidationError(sorted(issues, key=_rank))


def parse_manifest(candidate: Any) -> PluginManifest:
    """Validate a whole manifest, collecting every problem before raising."""
    if isinstance(candidate, PluginManifest):
        return candidate
    if not isinstance(candidate, dict):
        raise PluginValidationError([ValidationIssue("", "Manifest must be an object")])
    plugins = candidate.get("plugins", [])
    if not isinstance(plugins, list):
        raise PluginValidationError([ValidationIssue("plugins", "plugins must be a list")])

    issues: list[ValidationIssue] = []
    for index, item in enumerate(plugins):
        issues.extend(_entry_issues(item, prefix=("plugins", index)))
    issues.extend(_duplicate_issues(plugins))
    if issues:
        raise PluginValidationError(sorted(issues, key=_rank))
    return PluginManifest.model_validate(candidate)


def validate_entry(candidate: Any) -> RemotePlugin | LocalPlugin | PluginValidationError:
    """Return the validated entry, or the validation error describing every problem."""
    try:
        return parse_entry(candidate)
    except PluginValidationError as exc:
        return exc


def validate_manifest(candidate: Any) -> PluginManifest | PluginValidationError:
    try:
        return parse_manifest(candidate)
    except PluginValidationError as exc:
        return exc


def entry_to_dict(entry: RemotePlugin | LocalPlugin) -> dict[str, Any]:
    """Wire form of an entry: camelCase keys, absent optional fields omitted."""
    return entry.model_dump(mode="json", by_alias=True, exclude_none=True)


def manifest_to_dict(manifest: PluginManifest) -> dict[str, Any]:
    return {"plugins": [entry_to_dict(entry) for entry in manifest.plugins]}
