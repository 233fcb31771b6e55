"""
Error types for the Fibery SDK.

This module defines all exception types raised by the SDK:
- FiberyError: Base exception
- SchemaIntegrityError: Backend schema snapshot is inconsistent
- MalformedSchemaError: Schema payload does not match the wire format
- NotFoundError: Unknown type or field name
- TransportError: Network or HTTP failure talking to the backend
- CommandError: Command API answered with success=false

Invariants:
    - All errors inherit from FiberyError
    - Errors include the workspace/type/field they concern in details
    - Integrity errors are fatal and never retried by the SDK
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class FiberyError(Exception):
    """Base exception for all Fibery SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "FIBERY_ERROR"
        self.details = details or {}


class SchemaIntegrityError(FiberyError):
    """Backend schema snapshot is internally inconsistent.

    Raised when:
    - A relation id has no counterpart field on the target type
    - A relation id is shared by more than two fields
    - A type declares more than one title field
    """

    def __init__(
        self,
        message: str,
        type_name: Optional[str] = None,
        field_name: Optional[str] = None,
        relation: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="SCHEMA_INTEGRITY",
            details={
                "type_name": type_name,
                "field_name": field_name,
                "relation": relation,
            },
        )
        self.type_name = type_name
        self.field_name = field_name
        self.relation = relation


class MalformedSchemaError(SchemaIntegrityError):
    """Schema payload failed wire-format validation."""

    def __init__(self, message: str, location: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = "MALFORMED_SCHEMA"
        self.details["location"] = location
        self.location = location


class NotFoundKind(Enum):
    """What kind of name lookup failed."""

    UNKNOWN_TYPE = "unknown-type"
    UNKNOWN_FIELD = "unknown-field"


class NotFoundError(FiberyError):
    """Unknown type or field name.

    Includes suggestions for similar names.

    Attributes:
        kind: Which lookup failed
        name: The name that was not found
        type_name: Owning type, for unknown fields
        suggestions: Similar names
    """

    def __init__(
        self,
        kind: NotFoundKind,
        name: str,
        type_name: Optional[str] = None,
        suggestions: Optional[List[str]] = None,
    ) -> None:
        suggestions = suggestions or []
        if kind is NotFoundKind.UNKNOWN_TYPE:
            msg = f'Database "{name}" not found in the schema'
        else:
            msg = f'Field "{name}" not found in the database "{type_name}"'
        if suggestions:
            msg += f". Did you mean: {', '.join(suggestions)}?"

        super().__init__(
            msg,
            code="NOT_FOUND",
            details={
                "kind": kind.value,
                "name": name,
                "type_name": type_name,
                "suggestions": suggestions,
            },
        )
        self.kind = kind
        self.name = name
        self.type_name = type_name
        self.suggestions = suggestions


class TransportError(FiberyError):
    """Failed to talk to the Fibery backend.

    Raised when:
    - Workspace is unreachable or the request times out
    - Backend answers with an unexpected HTTP status
    - Response body cannot be decoded
    """

    def __init__(
        self,
        message: str,
        workspace: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            details={"workspace": workspace, "status_code": status_code},
        )
        self.workspace = workspace
        self.status_code = status_code


class CommandError(TransportError):
    """Command API reported a failed command.

    Attributes:
        result: The backend's error payload
    """

    def __init__(
        self,
        message: str,
        workspace: Optional[str] = None,
        result: Any = None,
    ) -> None:
        super().__init__(message, workspace=workspace)
        self.code = "COMMAND_ERROR"
        self.details["result"] = result
        self.result = result


def find_suggestions(unknown: str, known: List[str]) -> List[str]:
    """Find similar names for suggestions."""
    suggestions = []
    unknown_lower = unknown.lower()

    for name in known:
        lower = name.lower()
        if (
            (lower.startswith(unknown_lower[:3]) if len(unknown_lower) >= 3 else False)
            or unknown_lower in lower
            or (lower in unknown_lower and len(lower) >= 3)
        ):
            suggestions.append(name)

    return suggestions[:3]
