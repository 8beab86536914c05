"""Command-line entry point.

    pluginkit scaffold --name "My Plugin" --location local --path ./my-plugin
    pluginkit scaffold --file entry.json --phase-timeout 30
    pluginkit list [--markdown]
    pluginkit validate entry.json
    pluginkit remove my-plugin

Every command prints JSON (except ``list --markdown``) and exits 0 on
success, 1 otherwise.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pluginkit.config import Settings
from pluginkit.errors import PluginValidationError
from pluginkit.schema import entry_to_dict, manifest_to_dict, slugify
from pluginkit.service import PluginService
from pluginkit.summary import format_plugins_summary

logger = logging.getLogger(__name__)


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2))


def _read_json(source: str) -> Any:
    if source == "-":
        return json.load(sys.stdin)
    return json.loads(Path(source).read_text(encoding="utf-8"))


def _entry_from_args(args: argparse.Namespace) -> dict[str, Any]:
    if args.file:
        return _read_json(args.file)

    entry: dict[str, Any] = {
        "slug": args.slug or slugify(args.name or ""),
        "name": args.name,
        "location": args.location,
        "enabled": not args.disabled,
    }
    for key in ("package", "path", "description"):
        value = getattr(args, key)
        if value is not None:
            entry[key] = value
    if args.role_definition:
        entry["roleDefinition"] = args.role_definition
    if args.custom_instructions:
        entry["customInstructions"] = args.custom_instructions
    if args.group:
        entry["groups"] = list(args.group)
    return {k: v for k, v in entry.items() if v is not None}


# ─── Commands ────────────────────────────────────────────────────────────


async def _cmd_scaffold(service: PluginService, args: argparse.Namespace) -> int:
    result = await service.scaffold(_entry_from_args(args), phase_timeout=args.phase_timeout)
    _emit(result.to_dict())
    return 0 if result.success else 1


async def _cmd_list(service: PluginService, args: argparse.Namespace) -> int:
    loaded = await service.refresh()
    if not loaded.success:
        _emit(loaded.to_dict())
        return 1
    plugins = await service.get_plugins()
    if args.markdown:
        print(format_plugins_summary(plugins))
    else:
        _emit({"plugins": [entry_to_dict(p) for p in plugins]})
    return 0


async def _cmd_validate(service: PluginService, args: argparse.Namespace) -> int:
    data = _read_json(args.source)
    is_manifest = isinstance(data, dict) and "plugins" in data
    result = service.validate_manifest(data) if is_manifest else service.validate_entry(data)

    if isinstance(result, PluginValidationError):
        _emit({"valid": False, "errors": [str(issue) for issue in result.issues]})
        return 1
    if is_manifest:
        _emit({"valid": True, "manifest": manifest_to_dict(result)})
    else:
        _emit({"valid": True, "plugin": entry_to_dict(result)})
    return 0


async def _cmd_remove(service: PluginService, args: argparse.Namespace) -> int:
    result = await service.remove_plugin(args.slug)
    _emit(result.to_dict())
    return 0 if result.success else 1


COMMANDS = {
    "scaffold": _cmd_scaffold,
    "list": _cmd_list,
    "validate": _cmd_validate,
    "remove": _cmd_remove,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pluginkit", description="Scaffold and register workspace plugins"
    )
    parser.add_argument(
        "--workspace", default=None, help="Workspace root (overrides PLUGINKIT_WORKSPACE_ROOT)"
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    scaffold = sub.add_parser("scaffold", help="Create plugin files and register the plugin")
    scaffold.add_argument(
        "--file", default=None, help="JSON file with the plugin entry ('-' for stdin)"
    )
    scaffold.add_argument("--name", default=None, help="Display name")
    scaffold.add_argument("--slug", default=None, help="Slug (default: derived from --name)")
    scaffold.add_argument("--location", choices=["remote", "local"], default="local")
    scaffold.add_argument("--package", default=None, help="Package name for remote plugins")
    scaffold.add_argument("--path", default=None, help="Path for local plugins")
    scaffold.add_argument("--description", default=None)
    scaffold.add_argument("--role-definition", default=None)
    scaffold.add_argument("--custom-instructions", default=None)
    scaffold.add_argument("--group", action="append", default=None, help="Repeatable")
    scaffold.add_argument("--disabled", action="store_true", help="Register as disabled")
    scaffold.add_argument(
        "--phase-timeout", type=float, default=None, help="Seconds allowed per phase"
    )

    listing = sub.add_parser("list", help="List registered plugins")
    listing.add_argument("--markdown", action="store_true", help="Print a markdown summary")

    validate = sub.add_parser("validate", help="Validate a plugin entry or manifest JSON file")
    validate.add_argument("source", help="JSON file path ('-' for stdin)")

    remove = sub.add_parser("remove", help="Remove a plugin from the manifest")
    remove.add_argument("slug")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    overrides: dict[str, Any] = {}
    if args.workspace:
        overrides["workspace_root"] = Path(args.workspace).resolve()
    settings = Settings(**overrides)
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    service = PluginService(settings)
    try:
        return asyncio.run(COMMANDS[args.command](service, args))
    except (OSError, ValueError) as e:
        # Unreadable or non-JSON input files.
        logger.error("%s failed: %s", args.command, e)
        _emit({"success": False, "error": str(e)})
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
