"""
Fibery Python SDK - schema cache and query compilation for the Fibery API.

This SDK provides:
- Schema model (Schema, Type, Field) built from GET /api/schema
- SchemaCache with etag revalidation and single-flight fetching
- Field classification (references, documents, writable, searchable)
- Select and filter compilers for fibery.entity/query
- A thin httpx transport for schema, command and document endpoints

Example:
    >>> from fibery_sdk import FiberyTransport, SchemaCache, compile_select
    >>>
    >>> async with FiberyTransport("acme", token) as transport:
    ...     cache = SchemaCache.from_settings(transport)
    ...     schema = await cache.get_schema("acme")
    ...     task = schema.get_type("Tasks/Task")
    ...     where, params = compile_filter(
    ...         [Condition("Tasks/Name", "text", "contains", "login")], "and", task, schema
    ...     )
    ...     rows = await transport.execute_command(
    ...         build_entity_query(task.name, compile_select(task, schema, "raw"), where, params, limit=50)
    ...     )

Invariants:
    - A Schema is immutable; a backend change yields a new instance
    - Concurrent get_schema() calls for one workspace share one fetch
    - Compilers never emit unsupported fields

Version: 1.0.0
"""

__version__ = "1.0.0"

from .builder import build_schema
from .cache import CacheStats, NotModified, SchemaCache, SchemaFetcher, SchemaPayload
from .config import Settings, get_settings
from .errors import (
    CommandError,
    FiberyError,
    MalformedSchemaError,
    NotFoundError,
    NotFoundKind,
    SchemaIntegrityError,
    TransportError,
)
from .fields import (
    ControlType,
    FieldPolicy,
    control_type,
    field_key,
    is_collection_reference,
    is_file_field,
    is_rich_text_document,
    is_searchable,
    is_single_reference,
    is_supported,
    is_writable,
    searchable_fields,
    supported_fields,
    writable_fields,
)
from .filters import CompiledFilter, Condition, MatchMode, Operator, compile_filter
from .query import build_entity_query, build_entity_search_query, build_relation_options_query
from .schema import Cardinality, Field, Schema, Type
from .select import FIBERY_URL_FIELD, OutputMode, compile_select
from .transport import FiberyTransport
from .update import EntityUpdate, build_entity_update

__all__ = [
    # Version
    "__version__",
    # Schema model
    "Schema",
    "Type",
    "Field",
    "Cardinality",
    "build_schema",
    # Cache
    "SchemaCache",
    "SchemaFetcher",
    "SchemaPayload",
    "NotModified",
    "CacheStats",
    # Classification
    "ControlType",
    "FieldPolicy",
    "control_type",
    "field_key",
    "is_single_reference",
    "is_collection_reference",
    "is_rich_text_document",
    "is_file_field",
    "is_supported",
    "is_writable",
    "is_searchable",
    "supported_fields",
    "writable_fields",
    "searchable_fields",
    # Compilers
    "OutputMode",
    "FIBERY_URL_FIELD",
    "compile_select",
    "Condition",
    "Operator",
    "MatchMode",
    "CompiledFilter",
    "compile_filter",
    "build_entity_query",
    "build_relation_options_query",
    "build_entity_search_query",
    "EntityUpdate",
    "build_entity_update",
    # Transport
    "FiberyTransport",
    # Config
    "Settings",
    "get_settings",
    # Errors
    "FiberyError",
    "SchemaIntegrityError",
    "MalformedSchemaError",
    "NotFoundError",
    "NotFoundKind",
    "TransportError",
    "CommandError",
]
