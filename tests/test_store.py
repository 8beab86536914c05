import json

import pytest

from pluginkit.config import Settings
from pluginkit.errors import ErrorKind
from pluginkit.schema import parse_entry
from pluginkit.store import ManifestStore, read_manifest_file


def _read(store: ManifestStore) -> dict:
    return json.loads(store.path.read_text(encoding="utf-8"))


@pytest.mark.asyncio
async def test_register_into_missing_manifest(store, demo_entry):
    result = await store.register(parse_entry(demo_entry))

    assert result.success is True
    assert _read(store) == {
        "plugins": [
            {"slug": "demo", "name": "Demo", "enabled": True, "location": "local", "path": "./demo"}
        ]
    }
    text = store.path.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert text.startswith('{\n  "plugins"')


@pytest.mark.asyncio
async def test_register_twice_replaces_in_place(store, demo_entry):
    await store.register(parse_entry({**demo_entry, "slug": "first", "path": "./first"}))
    await store.register(parse_entry(demo_entry))
    await store.register(parse_entry({**demo_entry, "name": "Demo v2", "enabled": False}))

    plugins = _read(store)["plugins"]
    assert [p["slug"] for p in plugins] == ["first", "demo"]
    assert plugins[1]["name"] == "Demo v2"
    assert plugins[1]["enabled"] is False


@pytest.mark.asyncio
async def test_register_keeps_unknown_data(store, demo_entry):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(
        json.dumps({"version": 3, "plugins": [{"slug": "legacy", "name": "L", "extra": 1}]}),
        encoding="utf-8",
    )

    await store.register(parse_entry(demo_entry))

    data = _read(store)
    assert data["version"] == 3
    assert data["plugins"][0] == {"slug": "legacy", "name": "L", "extra": 1}
    assert data["plugins"][1]["slug"] == "demo"


@pytest.mark.asyncio
async def test_corrupt_manifest_treated_as_empty(store, demo_entry):
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json", encoding="utf-8")

    result = await store.register(parse_entry(demo_entry))

    assert result.success is True
    assert [p["slug"] for p in _read(store)["plugins"]] == ["demo"]


def test_wrong_shape_read_as_empty(tmp_path):
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps({"plugins": {"a": 1}}), encoding="utf-8")
    assert read_manifest_file(path) == {"plugins": []}
    assert read_manifest_file(tmp_path / "missing.json") == {"plugins": []}


@pytest.mark.asyncio
async def test_register_without_workspace(tmp_path, demo_entry):
    store = ManifestStore(Settings(workspace_root=None, _env_file=None))
    result = await store.register(parse_entry(demo_entry))
    assert result.success is False
    assert result.error_kind is ErrorKind.ENVIRONMENT
    assert result.error == "No workspace folder is open"


@pytest.mark.asyncio
async def test_register_write_failure(store, demo_entry):
    # A directory where the manifest file should be makes the write fail.
    store.path.mkdir(parents=True)
    result = await store.register(parse_entry(demo_entry))
    assert result.success is False
    assert result.error_kind is ErrorKind.IO


@pytest.mark.asyncio
async def test_unregister_missing_leaves_file_untouched(store, demo_entry):
    await store.register(parse_entry(demo_entry))
    before = store.path.read_bytes()

    result = await store.unregister("ghost")

    assert result.success is False
    assert result.error_kind is ErrorKind.NOT_FOUND
    assert "not found" in result.error
    assert store.path.read_bytes() == before


@pytest.mark.asyncio
async def test_unregister_removes_entry(store, demo_entry):
    await store.register(parse_entry(demo_entry))
    await store.register(parse_entry({**demo_entry, "slug": "other"}))

    result = await store.unregister("demo")

    assert result.success is True
    assert [p["slug"] for p in _read(store)["plugins"]] == ["other"]


@pytest.mark.asyncio
async def test_load_entries_skips_invalid(store, demo_entry):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(
        json.dumps({"plugins": [demo_entry, {"slug": "Bad!", "name": "x"}]}), encoding="utf-8"
    )

    entries = await store.load_entries()

    assert [e.slug for e in entries] == ["demo"]
