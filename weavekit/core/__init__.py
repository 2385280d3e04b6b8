"""
Core building blocks shared by the api and graph packages.

Contains:
- config: pydantic-settings Settings and segment presets
- exceptions: WeaveKitError hierarchy
- logging_config: Logging setup and sync lifecycle helpers
- models: Canonical weave, node, edge and client-state models
"""
