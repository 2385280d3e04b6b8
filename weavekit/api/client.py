"""Async HTTP client for the remote weave service."""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from weavekit.api.payloads import (
    deserialize_edge_deletion,
    deserialize_edge_mutation,
    deserialize_node_deletion,
    deserialize_node_mutation,
    deserialize_path,
    deserialize_segment,
    deserialize_weave,
    ensure_list,
    unwrap_data,
)
from weavekit.core.config import Settings, get_settings
from weavekit.core.exceptions import WeaveServiceError
from weavekit.core.models import (
    EdgeDeletionResult,
    EdgeInput,
    EdgeMutationResult,
    EdgeUpdateInput,
    GraphQueryOptions,
    GraphSegment,
    NodeDeletionResult,
    NodeInput,
    NodeMutationResult,
    NodeUpdateInput,
    PathResult,
    Weave,
)

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    return quote(value, safe="")


class WeaveAPIClient:
    """Async client for weave (knowledge graph) endpoints.

    Every graph-returning call goes through ``weavekit.api.payloads`` so
    callers only ever see canonical models.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying HTTP client."""
        if self._client is None:
            api = self.settings.api
            self._client = httpx.AsyncClient(
                base_url=api.base_url,
                timeout=httpx.Timeout(api.timeout, connect=api.connect_timeout),
                headers=api.headers,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "WeaveAPIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: Any = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request and return the unwrapped JSON body.

        Raises:
            WeaveServiceError: On HTTP error status, timeout or transport failure
        """
        client = await self._get_client()
        context = {"method": method, "path": path}

        try:
            response = await client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            try:
                payload = e.response.json()
            except ValueError:
                payload = None
            logger.warning(f"[WeaveAPI] {method} {path} -> HTTP {status}")
            raise WeaveServiceError(
                f"API Error {status}: {e.response.reason_phrase}",
                status_code=status,
                payload=payload,
                context=context,
            ) from e
        except httpx.TimeoutException as e:
            logger.warning(f"[WeaveAPI] {method} {path} timed out")
            raise WeaveServiceError("Request timeout", context=context) from e
        except httpx.RequestError as e:
            logger.warning(f"[WeaveAPI] {method} {path} failed: {e}")
            raise WeaveServiceError(f"Request failed: {e}", context=context) from e

        logger.debug(f"[WeaveAPI] {method} {path} -> {response.status_code}")
        try:
            return unwrap_data(response.json())
        except ValueError:
            return None

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_weaves(self) -> list[Weave]:
        """List the weaves available to the current user."""
        payload = await self._request("GET", "/weaves")
        return [deserialize_weave(item) for item in ensure_list(payload)]

    async def get_weave(self, weave_id: str) -> Weave:
        """Get the full snapshot of one weave."""
        payload = await self._request("GET", f"/weaves/{_segment(weave_id)}")
        return deserialize_weave(payload)

    async def get_aggregated_weave(
        self,
        domain: Optional[str] = None,
        node_types: Optional[list[str]] = None,
        edge_types: Optional[list[str]] = None,
        max_nodes: Optional[int] = None,
    ) -> Weave:
        """Get the read-only view merged across all weaves."""
        params: list[tuple[str, str]] = []
        if domain is not None:
            params.append(("domain", domain))
        for node_type in node_types or []:
            params.append(("nodeTypes", node_type))
        for edge_type in edge_types or []:
            params.append(("edgeTypes", edge_type))
        if max_nodes is not None:
            params.append(("maxNodes", str(max_nodes)))

        payload = await self._request("GET", "/weave", params=params or None)
        return deserialize_weave(payload)

    async def get_graph_segment(
        self,
        weave_id: str,
        options: Optional[GraphQueryOptions] = None,
    ) -> GraphSegment:
        """
        Fetch a partial slice of a weave.

        Args:
            weave_id: Weave to slice
            options: Type/cluster/limit/depth filters and spatial bounds

        Returns:
            GraphSegment (clusters is None when the service sent no communities)
        """
        params = (options or GraphQueryOptions()).to_params()
        payload = await self._request("GET", f"/weaves/{_segment(weave_id)}/graph", params=params or None)
        return deserialize_segment(payload)

    async def get_subgraph(self, node_ids: list[str], depth: int = 1) -> Weave:
        """Get the neighbourhood of specific nodes."""
        payload = await self._request(
            "POST",
            "/weave/subgraph",
            json={"nodeIds": node_ids, "node_ids": node_ids, "depth": depth},
        )
        return deserialize_weave(payload)

    async def find_path(self, source: str, target: str) -> PathResult:
        """Find the shortest path between two nodes."""
        payload = await self._request("GET", "/weave/path", params={"source": source, "target": target})
        return deserialize_path(payload)

    async def get_metrics(self) -> dict[str, Any]:
        """Get graph-wide metrics (node/edge counts, density, communities, diameter)."""
        payload = await self._request("GET", "/weave/metrics")
        return dict(payload or {})

    # =========================================================================
    # Mutations (each returns the full updated snapshot)
    # =========================================================================

    async def create_node(self, weave_id: str, payload: NodeInput) -> NodeMutationResult:
        data = await self._request("POST", f"/weaves/{_segment(weave_id)}/nodes", json=payload.to_payload())
        return deserialize_node_mutation(data)

    async def update_node(self, weave_id: str, node_id: str, payload: NodeUpdateInput) -> NodeMutationResult:
        data = await self._request(
            "PATCH",
            f"/weaves/{_segment(weave_id)}/nodes/{_segment(node_id)}",
            json=payload.to_payload(),
        )
        return deserialize_node_mutation(data)

    async def delete_node(self, weave_id: str, node_id: str) -> NodeDeletionResult:
        data = await self._request("DELETE", f"/weaves/{_segment(weave_id)}/nodes/{_segment(node_id)}")
        return deserialize_node_deletion(data, node_id)

    async def create_edge(self, weave_id: str, payload: EdgeInput) -> EdgeMutationResult:
        data = await self._request("POST", f"/weaves/{_segment(weave_id)}/edges", json=payload.to_payload())
        return deserialize_edge_mutation(data)

    async def update_edge(self, weave_id: str, edge_id: str, payload: EdgeUpdateInput) -> EdgeMutationResult:
        data = await self._request(
            "PATCH",
            f"/weaves/{_segment(weave_id)}/edges/{_segment(edge_id)}",
            json=payload.to_payload(),
        )
        return deserialize_edge_mutation(data)

    async def delete_edge(self, weave_id: str, edge_id: str) -> EdgeDeletionResult:
        data = await self._request("DELETE", f"/weaves/{_segment(weave_id)}/edges/{_segment(edge_id)}")
        return deserialize_edge_deletion(data, edge_id)

    async def apply_layout(
        self,
        weave_id: str,
        algorithm: str,
        options: Optional[dict[str, Any]] = None,
    ) -> Weave:
        """Ask the service to re-run a layout algorithm (force, circular, hierarchical)."""
        data = await self._request(
            "POST",
            f"/weaves/{_segment(weave_id)}/layout",
            json={"algorithm": algorithm, "options": options},
        )
        return deserialize_weave(data)


# Singleton instance
_weave_client: WeaveAPIClient | None = None


def get_weave_client() -> WeaveAPIClient:
    """Get weave API client singleton."""
    global _weave_client
    if _weave_client is None:
        _weave_client = WeaveAPIClient()
    return _weave_client
