"""pluginkit: scaffold and register workspace plugins.

Manages:
  - Plugin entry validation (remote package or local path)
  - File generation at <workspace>/.pluginkit/plugins/<slug>
  - The workspace manifest at <workspace>/.pluginkit/plugins-manifest.json
  - An in-memory registry with install/update/remove/enable/disable
"""
