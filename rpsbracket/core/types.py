"""Core data types for the rpsbracket application."""

from typing import Any, Dict, Optional, TypedDict  # noqa: UP035


class _FirestoreDocumentBase(TypedDict):
    id: str
    createdAt: Any


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Generic Firestore document structure."""

    path: str
    lastUpdated: Any


class APIResponse(TypedDict):
    """Generic API response structure."""

    success: bool
    message: str
    data: Optional[Dict[str, Any]]  # noqa: UP006


def api_response(
    success: bool, message: str = "", data: Optional[Dict[str, Any]] = None  # noqa: UP006
) -> APIResponse:
    """Build an APIResponse payload."""
    return APIResponse(success=success, message=message, data=data)
