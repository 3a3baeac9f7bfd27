from manavault.source.introspect import FieldSpec, SchemaIntrospector, pick_first
from manavault.source.printings import (
    PRINTING_FIELDS,
    SourceSummary,
    UpstreamSchemaError,
    UpstreamSource,
    printing_from_row,
)

__all__ = [
    "PRINTING_FIELDS",
    "FieldSpec",
    "SchemaIntrospector",
    "SourceSummary",
    "UpstreamSchemaError",
    "UpstreamSource",
    "pick_first",
    "printing_from_row",
]
