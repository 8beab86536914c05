"""Configuration management for pluginkit.

Settings come from ``PLUGINKIT_*`` environment variables (or a ``.env`` file)
and can be overridden per call by constructing ``Settings`` directly, which is
what the CLI does for ``--workspace``.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pluginkit.errors import WorkspaceNotFoundError

logger = logging.getLogger(__name__)

PACKAGE_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


class Settings(BaseSettings):
    """pluginkit settings with env and file support."""

    model_config = SettingsConfigDict(env_prefix="PLUGINKIT_", env_file=".env", extra="ignore")

    workspace_root: Path | None = Field(
        default=None, description="Workspace root that holds the manifest and plugin folders"
    )
    plugins_dir: str = Field(
        default=".pluginkit/plugins",
        description="Directory (relative to the workspace) with one folder per plugin slug",
    )
    manifest_path: str = Field(
        default=".pluginkit/plugins-manifest.json",
        description="Manifest file (relative to the workspace)",
    )
    template_dir: Path | None = Field(
        default=None, description="Override for the directory holding the file templates"
    )
    log_level: str = Field(default="INFO", description="Log level for the CLI")

    def resolve_workspace(self) -> Path:
        """Return the workspace root or raise if none is available."""
        if self.workspace_root is None:
            raise WorkspaceNotFoundError()
        root = Path(self.workspace_root).expanduser()
        if not root.is_dir():
            raise WorkspaceNotFoundError(f"Workspace folder does not exist: {root}")
        return root.resolve()

    def plugin_dir(self, slug: str) -> Path:
        return self.resolve_workspace() / self.plugins_dir / slug

    def manifest_file(self) -> Path:
        return self.resolve_workspace() / self.manifest_path

    def templates(self) -> Path:
        return Path(self.template_dir) if self.template_dir else PACKAGE_TEMPLATE_DIR


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
