import tomllib
from pathlib import Path

PYPROJECT = Path(__file__).resolve().parents[1] / "pyproject.toml"


def _names(requirements: list[str]) -> set[str]:
    return {req.split(">")[0].split("=")[0].split("<")[0].strip() for req in requirements}


def test_httpx_is_test_only():
    project = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))["project"]
    assert "httpx" not in _names(project["dependencies"])
    assert "httpx" in _names(project["optional-dependencies"]["test"])
    assert {"pydantic", "pydantic-settings", "fastapi"} <= _names(project["dependencies"])
