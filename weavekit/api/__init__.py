"""
Weave service access.

- WeaveAPIClient: async HTTP client for the weave REST API
- payloads: normalization of raw service payloads into canonical models
"""

from weavekit.api.client import WeaveAPIClient, get_weave_client

__all__ = ["WeaveAPIClient", "get_weave_client"]
