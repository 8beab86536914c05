import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pluginkit.api import create_router
from pluginkit.service import PluginService


@pytest.fixture
def client(settings, store):
    app = FastAPI()
    app.include_router(create_router(PluginService(settings, store)))
    return TestClient(app)


def test_list_empty(client):
    resp = client.get("/api/plugins")
    assert resp.status_code == 200
    assert resp.json() == {"plugins": []}


def test_get_missing_plugin_404(client):
    resp = client.get("/api/plugins/ghost")
    assert resp.status_code == 404


def test_malformed_json_400(client):
    resp = client.post(
        "/api/plugins/scaffold",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400


def test_scaffold_and_get(client, demo_entry):
    resp = client.post("/api/plugins/scaffold", json=demo_entry)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["progress"][-1]["percent"] == 100

    resp = client.get("/api/plugins/demo")
    assert resp.status_code == 200
    assert resp.json()["plugin"]["path"] == "./demo"


def test_scaffold_invalid_entry_400(client):
    resp = client.post("/api/plugins/scaffold", json={"slug": "Bad!", "name": "x"})
    assert resp.status_code == 400


def test_phase_endpoints(client, demo_entry):
    init = client.post("/api/plugins/scaffold/init", json=demo_entry).json()
    assert init["success"] is True
    assert init["progress"][-1]["message"] == "Directory created"
    assert client.post("/api/plugins/scaffold/content", json=demo_entry).json()["success"] is True
    assert client.post("/api/plugins/register", json=demo_entry).json()["success"] is True
    assert [p["slug"] for p in client.get("/api/plugins").json()["plugins"]] == ["demo"]


def test_validate(client, demo_entry):
    ok = client.post("/api/plugins/validate", json=demo_entry).json()
    assert ok["valid"] is True

    bad = client.post("/api/plugins/validate", json={**demo_entry, "package": "x"}).json()
    assert bad["valid"] is False
    assert any("package" in e for e in bad["errors"])

    dupes = client.post("/api/plugins/validate", json={"plugins": [demo_entry, demo_entry]})
    assert dupes.json()["valid"] is False


def test_install_update_toggle_remove(client, demo_entry):
    assert client.post("/api/plugins", json=demo_entry).status_code == 200
    assert client.post("/api/plugins", json=demo_entry).status_code == 400

    resp = client.patch("/api/plugins/demo", json={"description": "Updated"})
    assert resp.json()["plugin"]["description"] == "Updated"

    assert client.post("/api/plugins/demo/disable").json()["plugin"]["enabled"] is False
    assert client.post("/api/plugins/demo/enable").json()["plugin"]["enabled"] is True

    assert client.delete("/api/plugins/demo").status_code == 200
    assert client.delete("/api/plugins/demo").status_code == 404
    assert client.patch("/api/plugins/demo", json={"name": "x"}).status_code == 404


def test_load_manifest_all_or_nothing(client, demo_entry):
    bad = {"plugins": [demo_entry, {"slug": "b"}]}
    assert client.post("/api/plugins/manifest", json=bad).status_code == 400
    assert client.get("/api/plugins").json()["plugins"] == []

    resp = client.post("/api/plugins/manifest", json={"plugins": [demo_entry]})
    assert resp.status_code == 200
    assert resp.json()["plugins"][0]["slug"] == "demo"


def test_refresh(client, demo_entry):
    client.post("/api/plugins", json=demo_entry)
    resp = client.post("/api/plugins/refresh")
    assert resp.status_code == 200
    assert [p["slug"] for p in resp.json()["plugins"]] == ["demo"]


def test_configuration_get_and_patch(client):
    assert client.get("/api/plugins/configuration").json() == {"configuration": {}}

    resp = client.patch("/api/plugins/configuration", json={"autoRefresh": True})
    assert resp.status_code == 200
    assert resp.json() == {"configuration": {"autoRefresh": True}}

    client.patch("/api/plugins/configuration", json={"theme": "dark"})
    body = client.get("/api/plugins/configuration").json()
    assert body == {"configuration": {"autoRefresh": True, "theme": "dark"}}

    assert client.patch("/api/plugins/configuration", json=[1, 2]).status_code == 400
