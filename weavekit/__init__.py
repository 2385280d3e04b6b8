"""
weavekit - client-side cache and synchronization engine for knowledge-graph weaves.

This package is organized into subpackages:
- core/: Settings, exceptions, logging and canonical models
- api/: HTTP client for the weave service and payload normalization
- graph/: Graph cache store, transforms, clustering, focus, viewport and explorer helpers
"""

from weavekit.api.client import WeaveAPIClient, get_weave_client
from weavekit.core.config import Settings, get_settings
from weavekit.core.exceptions import (
    EntityDesyncError,
    InvalidPayloadError,
    ReadOnlyModeError,
    WeaveKitError,
    WeaveServiceError,
)
from weavekit.graph.store import KnowledgeGraphStore

__version__ = "0.1.0"

__all__ = [
    "KnowledgeGraphStore",
    "WeaveAPIClient",
    "get_weave_client",
    "Settings",
    "get_settings",
    "WeaveKitError",
    "WeaveServiceError",
    "InvalidPayloadError",
    "ReadOnlyModeError",
    "EntityDesyncError",
]
