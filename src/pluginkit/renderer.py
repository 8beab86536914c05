"""Render plugin file templates.

Templates use two constructs only:

    {{field}}                       -> value of ``field`` from the entry
    {{#if field}} ... {{/if}}       -> kept when ``field`` is truthy, else dropped

Conditional blocks are resolved first, then placeholders, in a single pass
each.  Blocks do not nest.  Placeholders for fields the entry does not have
are left in the output untouched.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from pluginkit.errors import TemplateError, TemplateNotFoundError
from pluginkit.schema import entry_to_dict

logger = logging.getLogger(__name__)

_IF_RE = re.compile(r"\{\{#if\s+([A-Za-z_][A-Za-z0-9_]*)\s*\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_VAR_RE = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")


class FileKind(str, Enum):
    PACKAGE_MANIFEST = "package_manifest"
    ENTRY_POINT = "entry_point"
    PLUGIN_CONFIG = "plugin_config"
    README = "readme"


@dataclass(frozen=True)
class FileSpec:
    kind: FileKind
    template: str
    output: str


FILE_SPECS: tuple[FileSpec, ...] = (
    FileSpec(FileKind.PACKAGE_MANIFEST, "pyproject.toml.template", "pyproject.toml"),
    FileSpec(FileKind.ENTRY_POINT, "plugin.py.template", "plugin.py"),
    FileSpec(FileKind.PLUGIN_CONFIG, "plugin.json.template", "plugin.json"),
    FileSpec(FileKind.README, "README.md.template", "README.md"),
)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value)
    return str(value)


def flatten(entry: BaseModel | Mapping[str, Any], extra: Mapping[str, Any] | None = None) -> dict:
    """Field map used for rendering, keyed by wire (camelCase) names."""
    data = entry_to_dict(entry) if isinstance(entry, BaseModel) else dict(entry)
    if extra:
        data.update(extra)
    return data


def render(
    template: str,
    entry: BaseModel | Mapping[str, Any],
    extra: Mapping[str, Any] | None = None,
) -> str:
    """Render ``template`` against ``entry``. Pure and deterministic."""
    data = flatten(entry, extra)

    def _conditional(match: re.Match) -> str:
        return match.group(2) if data.get(match.group(1)) else ""

    def _placeholder(match: re.Match) -> str:
        key = match.group(1)
        if key not in data or data[key] is None:
            return match.group(0)
        return _as_text(data[key])

    content = _IF_RE.sub(_conditional, template)
    return _VAR_RE.sub(_placeholder, content)


def template_context(entry: BaseModel) -> dict[str, Any]:
    """Computed values layered over the entry for the canonical templates."""
    data = flatten(entry)
    context: dict[str, Any] = {}
    if not data.get("description"):
        context["description"] = f"{data['name']} plugin"
    if data.get("location") == "local":
        context["package"] = f"pluginkit-{data['slug']}"
    return context


def load_template(name: str, template_dir: Path) -> str:
    path = template_dir / name
    if not path.is_file():
        raise TemplateNotFoundError(path)
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise TemplateError(path, f"Template file is not valid UTF-8: {path}") from e


def render_file(file_spec: FileSpec, entry: BaseModel, template_dir: Path) -> str:
    """Load the template for ``file_spec`` and render it for ``entry``."""
    template = load_template(file_spec.template, template_dir)
    return render(template, entry, template_context(entry))
