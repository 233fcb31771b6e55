"""
Wire format of the Fibery schema endpoint.

GET /api/schema returns a loosely typed JSON document with namespaced
keys ("fibery/name", "fibery/meta", ...). These pydantic models validate
that document once, at the boundary, so the schema builder can rely on
the presence and types of the keys it reads.

Meta maps stay as plain dicts: the backend adds meta keys freely and the
builder only reads the handful it understands.

Example:
    >>> raw = parse_raw_schema(response.json())
    >>> raw.types[0].name
    'fibery/user'
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import MalformedSchemaError


class _RawModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class RawField(_RawModel):
    """One field record as sent by the backend."""

    id: str = Field(alias="fibery/id")
    name: str = Field(alias="fibery/name")
    type: str = Field(alias="fibery/type")
    description: Optional[str] = Field(default=None, alias="fibery/description")
    meta: Dict[str, Any] = Field(default_factory=dict, alias="fibery/meta")
    deleted: bool = Field(default=False, alias="fibery/deleted?")


class RawType(_RawModel):
    """One type (database) record as sent by the backend."""

    id: str = Field(alias="fibery/id")
    name: str = Field(alias="fibery/name")
    description: Optional[str] = Field(default=None, alias="fibery/description")
    meta: Dict[str, Any] = Field(default_factory=dict, alias="fibery/meta")
    fields: List[RawField] = Field(default_factory=list, alias="fibery/fields")
    deleted: bool = Field(default=False, alias="fibery/deleted?")


class RawSchema(_RawModel):
    """The whole schema document."""

    id: Optional[str] = Field(default=None, alias="fibery/id")
    version: Optional[int] = Field(default=None, alias="fibery/version")
    meta: Dict[str, Any] = Field(default_factory=dict, alias="fibery/meta")
    types: List[RawType] = Field(alias="fibery/types")


def parse_raw_schema(payload: Any) -> RawSchema:
    """Validate a decoded schema payload.

    Args:
        payload: Decoded JSON body of GET /api/schema

    Returns:
        Validated RawSchema

    Raises:
        MalformedSchemaError: If the payload does not match the wire format
    """
    if isinstance(payload, RawSchema):
        return payload
    try:
        return RawSchema.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0]
        location = "/".join(str(part) for part in first.get("loc", ()))
        raise MalformedSchemaError(
            f"Malformed schema payload at '{location}': {first.get('msg')}",
            location=location,
        ) from e
