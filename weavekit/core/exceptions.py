"""Custom exceptions for weavekit."""

from typing import Any, Optional


class WeaveKitError(Exception):
    """Base exception for weavekit."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class WeaveServiceError(WeaveKitError):
    """Remote weave service or transport errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.status_code = status_code
        self.payload = payload


class InvalidPayloadError(WeaveServiceError):
    """A service response that cannot be deserialized."""

    pass


class ReadOnlyModeError(WeaveKitError):
    """
    Mutation attempted while the graph is not editable.

    Raised before any network call. This is a programming error on the
    calling side (controls should be disabled), never something to retry.
    """

    NO_WEAVE_SELECTED = "no_weave_selected"
    AGGREGATED_VIEW = "aggregated_view"

    _MESSAGES = {
        NO_WEAVE_SELECTED: "No weave selected. Select or create a workspace weave to edit.",
        AGGREGATED_VIEW: (
            "Knowledge graph is showing the aggregated view, which is read-only. "
            "Select a single weave to edit."
        ),
    }

    def __init__(self, reason: str, context: Optional[dict[str, Any]] = None):
        message = self._MESSAGES.get(reason, f"Knowledge graph is read-only ({reason})")
        super().__init__(message, context)
        self.reason = reason


class EntityDesyncError(WeaveKitError):
    """
    Mutation response disagrees with its own snapshot.

    The service claimed to create/update an entity that is missing from the
    weave snapshot it returned alongside it. Callers should force a refresh.
    """

    def __init__(
        self,
        entity_kind: str,
        entity_id: str,
        context: Optional[dict[str, Any]] = None,
    ):
        message = f"{entity_kind.capitalize()} {entity_id!r} not found in snapshot after mutation"
        super().__init__(message, context)
        self.entity_kind = entity_kind
        self.entity_id = entity_id
