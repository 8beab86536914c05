# Shared fixtures for pluginkit tests.
#
# Every test gets its own workspace under tmp_path; nothing touches the
# real working directory or reads PLUGINKIT_* from the environment.

from pathlib import Path

import pytest

from pluginkit.config import Settings
from pluginkit.store import ManifestStore


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    for key in ("WORKSPACE_ROOT", "PLUGINS_DIR", "MANIFEST_PATH", "TEMPLATE_DIR", "LOG_LEVEL"):
        monkeypatch.delenv(f"PLUGINKIT_{key}", raising=False)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def settings(workspace: Path) -> Settings:
    return Settings(workspace_root=workspace, _env_file=None)


@pytest.fixture
def store(settings: Settings) -> ManifestStore:
    return ManifestStore(settings)


@pytest.fixture
def demo_entry() -> dict:
    return {"slug": "demo", "name": "Demo", "location": "local", "path": "./demo"}
