import pytest

from pluginkit.errors import PluginValidationError
from pluginkit.schema import (
    LocalPlugin,
    PluginManifest,
    RemotePlugin,
    entry_to_dict,
    is_valid_slug,
    parse_entry,
    slugify,
    validate_entry,
    validate_manifest,
)


def _remote(**overrides):
    entry = {"slug": "demo", "name": "Demo", "location": "remote", "package": "demo-pkg"}
    entry.update(overrides)
    return entry


def _local(**overrides):
    entry = {"slug": "demo", "name": "Demo", "location": "local", "path": "./demo"}
    entry.update(overrides)
    return entry


# ─── Slugs ───────────────────────────────────────────────────────────────


@pytest.mark.parametrize("slug", ["my-plugin-2", "a", "abc123", "x-y-z"])
def test_valid_slugs(slug):
    assert is_valid_slug(slug)
    assert isinstance(validate_entry(_remote(slug=slug)), RemotePlugin)


@pytest.mark.parametrize("slug", ["Invalid_Slug!", "-lead", "trail-", "double--dash", "Upper"])
def test_invalid_slugs_rejected(slug):
    result = validate_entry(_remote(slug=slug))
    assert isinstance(result, PluginValidationError)
    assert result.fields == ["slug"]
    assert "lowercase letters, numbers, and hyphens" in str(result)


def test_slugify():
    assert slugify("My Plugin!") == "my-plugin"
    assert slugify("  Hello   World_2 ") == "hello-world-2"
    assert slugify("--a--b--") == "a-b"
    assert is_valid_slug(slugify("Some Fancy (Name)"))


# ─── Entries ─────────────────────────────────────────────────────────────


def test_valid_local_entry_defaults_enabled():
    entry = validate_entry(_local())
    assert isinstance(entry, LocalPlugin)
    assert entry.enabled is True
    assert entry_to_dict(entry) == {
        "slug": "demo",
        "name": "Demo",
        "enabled": True,
        "location": "local",
        "path": "./demo",
    }


def test_camel_case_fields_round_trip():
    entry = parse_entry(_remote(roleDefinition="You help.", customInstructions="Be brief."))
    assert entry.role_definition == "You help."
    assert entry.custom_instructions == "Be brief."
    data = entry_to_dict(entry)
    assert data["roleDefinition"] == "You help."
    assert data["customInstructions"] == "Be brief."


def test_remote_with_path_rejected():
    result = validate_entry(_remote(path="./x"))
    assert isinstance(result, PluginValidationError)
    assert "path" in str(result)
    assert result.fields == ["path"]


def test_local_with_package_rejected():
    result = validate_entry(_local(package="x"))
    assert isinstance(result, PluginValidationError)
    assert "package" in str(result)


def test_remote_requires_package():
    entry = _remote()
    del entry["package"]
    result = validate_entry(entry)
    assert isinstance(result, PluginValidationError)
    assert result.fields == ["package"]
    assert "package is required" in str(result)


def test_empty_name_rejected():
    result = validate_entry(_local(name="   "))
    assert isinstance(result, PluginValidationError)
    assert result.fields == ["name"]


def test_unknown_location_reports_every_problem():
    result = validate_entry({"slug": "Bad Slug", "name": "", "location": "cloud"})
    assert isinstance(result, PluginValidationError)
    assert result.fields == ["slug", "name", "location"]
    assert "location must be 'remote' or 'local'" in str(result)


def test_unknown_field_rejected():
    result = validate_entry(_local(color="red"))
    assert isinstance(result, PluginValidationError)
    assert "color" in str(result)


def test_unknown_field_named_like_a_location():
    result = validate_entry(_remote(local="x"))
    assert isinstance(result, PluginValidationError)
    assert result.fields == ["local"]
    assert "Unknown field 'local'" in str(result)


def test_non_object_rejected():
    assert isinstance(validate_entry("demo"), PluginValidationError)


def test_parse_entry_raises():
    with pytest.raises(PluginValidationError):
        parse_entry(_local(slug=""))


# ─── Manifests ───────────────────────────────────────────────────────────


def test_valid_manifest():
    manifest = validate_manifest({"plugins": [_local(), _remote(slug="other")]})
    assert isinstance(manifest, PluginManifest)
    assert [p.slug for p in manifest.plugins] == ["demo", "other"]


def test_manifest_duplicate_slug():
    result = validate_manifest({"plugins": [_local(), _remote()]})
    assert isinstance(result, PluginValidationError)
    assert "plugins.1.slug: duplicate slug 'demo'" in str(result)


def test_manifest_entry_errors_are_prefixed():
    result = validate_manifest({"plugins": [_local(), _local(slug="ok", path="")]})
    assert isinstance(result, PluginValidationError)
    assert result.fields == ["plugins.1.path"]


def test_manifest_must_be_object():
    assert isinstance(validate_manifest([]), PluginValidationError)
    assert isinstance(validate_manifest({"plugins": "nope"}), PluginValidationError)
