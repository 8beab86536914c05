"""pluginkit: FastAPI router.

Provides REST endpoints under /api/plugins for:
  GET    /                 list registered plugins
  GET    /configuration    registry options (PATCH merges new options)
  GET    /{slug}           one plugin
  POST   /validate         validate an entry without storing it
  POST   /scaffold         full scaffold (init, content, register)
  POST   /scaffold/init    phase 1 only
  POST   /scaffold/content phase 2 only
  POST   /register         phase 3 only
  POST   /                 install into the registry
  PATCH  /{slug}           update fields
  DELETE /{slug}           remove
  POST   /{slug}/enable    enable / disable
  POST   /manifest         replace the in-memory registry
  POST   /refresh          reload the registry from disk
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from pluginkit.errors import ErrorKind, PluginValidationError
from pluginkit.results import OperationResult, ScaffoldResult
from pluginkit.schema import entry_to_dict, manifest_to_dict
from pluginkit.service import PluginService

logger = logging.getLogger(__name__)


async def _json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body is not valid JSON")


def _scaffold_response(result: ScaffoldResult) -> dict:
    if result.error_kind is ErrorKind.VALIDATION:
        raise HTTPException(status_code=400, detail=result.error)
    return result.to_dict()


def _operation_response(result: OperationResult) -> dict:
    if not result.success:
        status = 404 if result.error and "not found" in result.error else 400
        raise HTTPException(status_code=status, detail=result.error)
    return result.to_dict()


def create_router(service: PluginService | None = None) -> APIRouter:
    """Build the plugins router bound to ``service`` (a default one when omitted)."""
    service = service or PluginService()
    router = APIRouter(prefix="/api/plugins", tags=["Plugins"])

    # ─── Queries ─────────────────────────────────────────────────────────

    @router.get("")
    async def list_plugins():
        plugins = await service.get_plugins()
        return {"plugins": [entry_to_dict(p) for p in plugins]}

    @router.get("/configuration")
    async def get_configuration():
        return {"configuration": service.get_configuration()}

    @router.patch("/configuration")
    async def set_configuration(request: Request):
        data = await _json_body(request)
        if not isinstance(data, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object of options")
        return {"configuration": service.set_configuration(data)}

    @router.get("/{slug}")
    async def get_plugin(slug: str):
        plugin = await service.get_plugin(slug)
        if plugin is None:
            raise HTTPException(status_code=404, detail=f"Plugin '{slug}' not found")
        return {"plugin": entry_to_dict(plugin)}

    @router.post("/validate")
    async def validate(request: Request):
        data = await _json_body(request)
        if isinstance(data, dict) and "plugins" in data:
            result = service.validate_manifest(data)
            if isinstance(result, PluginValidationError):
                return {"valid": False, "errors": [str(i) for i in result.issues]}
            return {"valid": True, "manifest": manifest_to_dict(result)}

        result = service.validate_entry(data)
        if isinstance(result, PluginValidationError):
            return {"valid": False, "errors": [str(i) for i in result.issues]}
        return {"valid": True, "plugin": entry_to_dict(result)}

    # ─── Scaffolding ─────────────────────────────────────────────────────

    @router.post("/scaffold")
    async def scaffold(request: Request, phase_timeout: float | None = None):
        data = await _json_body(request)
        result = await service.scaffold(data, phase_timeout=phase_timeout)
        return _scaffold_response(result)

    @router.post("/scaffold/init")
    async def scaffold_init(request: Request):
        return _scaffold_response(await service.scaffold_init(await _json_body(request)))

    @router.post("/scaffold/content")
    async def scaffold_content(request: Request):
        return _scaffold_response(await service.scaffold_content(await _json_body(request)))

    @router.post("/register")
    async def register(request: Request):
        return _scaffold_response(await service.register_plugin(await _json_body(request)))

    # ─── Registry ────────────────────────────────────────────────────────

    @router.post("")
    async def install_plugin(request: Request):
        data = await _json_body(request)
        return _operation_response(await service.install_plugin(data))

    @router.patch("/{slug}")
    async def update_plugin(slug: str, request: Request):
        data = await _json_body(request)
        if not isinstance(data, dict):
            raise HTTPException(status_code=400, detail="Expected a JSON object of fields")
        return _operation_response(await service.update_plugin(slug, data))

    @router.delete("/{slug}")
    async def remove_plugin(slug: str):
        return _operation_response(await service.remove_plugin(slug))

    @router.post("/{slug}/enable")
    async def enable_plugin(slug: str):
        return _operation_response(await service.enable_plugin(slug))

    @router.post("/{slug}/disable")
    async def disable_plugin(slug: str):
        return _operation_response(await service.disable_plugin(slug))

    @router.post("/manifest")
    async def load_manifest(request: Request):
        data = await _json_body(request)
        return _operation_response(service.load_manifest(data))

    @router.post("/refresh")
    async def refresh():
        result = await service.refresh()
        if not result.success:
            logger.error("Manifest refresh failed: %s", result.error)
            raise HTTPException(status_code=500, detail=result.error)
        return result.to_dict()

    return router
