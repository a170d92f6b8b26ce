from .batch import (
    BatchDocument,
    BatchStep,
    ParsedOperation,
    build_batch_mutation,
    build_batch_query,
    extract_root_field_name,
    parse_operation,
)
from .document_registry import DocumentRegistry
from .resolution_cache import ResolutionCache, build_cache_key
from .resolve import apply_inject, build_mutation_vars, get_at_path, lookup_variables

__all__ = [
    "BatchDocument",
    "BatchStep",
    "DocumentRegistry",
    "ParsedOperation",
    "ResolutionCache",
    "apply_inject",
    "build_batch_mutation",
    "build_batch_query",
    "build_cache_key",
    "build_mutation_vars",
    "extract_root_field_name",
    "get_at_path",
    "lookup_variables",
    "parse_operation",
]
