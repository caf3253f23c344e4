"""Schema graph, `$ref` resolution and directive processing."""

from .directives import (
    DirectiveProcessor,
    extract_derivation_rules,
    locate_frontmatter_part,
)
from .graph import (
    ArrayNode,
    ObjectNode,
    PrimitiveNode,
    RefNode,
    SchemaNode,
    find,
    get_property,
    parse_schema,
    walk,
)
from .loader import (
    FileSchemaLoader,
    InMemorySchemaLoader,
    SchemaLoader,
    load_root_schema,
)
from .resolver import RefResolver, ResolvedSchema

__all__ = [
    "ArrayNode",
    "DirectiveProcessor",
    "FileSchemaLoader",
    "InMemorySchemaLoader",
    "ObjectNode",
    "PrimitiveNode",
    "RefNode",
    "RefResolver",
    "ResolvedSchema",
    "SchemaLoader",
    "SchemaNode",
    "extract_derivation_rules",
    "find",
    "get_property",
    "load_root_schema",
    "locate_frontmatter_part",
    "parse_schema",
    "walk",
]
