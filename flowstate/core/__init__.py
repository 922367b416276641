"""
flowstate core module.

Contains the pieces with real invariants, shared by the driver and the CLI:
- Store: durable session record
- Composer: precedence-ordered request variables
- Normalizer: response shape rules
- Navigation: next-destination fallback chain
- Gate: single in-flight request guard
- Errors: user-visible failure taxonomy
"""

from flowstate.core.errors import (
    FlowError,
    ConfigLoadError,
    MissingWebhook,
    InvalidVariableJson,
    RequestFailed,
    MissingDestination,
)
from flowstate.core.store import (
    STORAGE_KEY,
    SessionState,
    SessionStore,
    StorageBackend,
    MemoryStorage,
    FileStorage,
    Ok,
    Corrupt,
)
from flowstate.core.composer import (
    VariableSource,
    compose,
    parse_variables,
    page_context_variables,
    build_request_variables,
)
from flowstate.core.normalizer import (
    Matched,
    NO_MATCH,
    ArchiveTitle,
    NormalizedResponse,
    unwrap_response,
    normalize,
    normalize_response,
    find_titles,
    normalize_title,
    extract_titles,
    extract_entry_data,
)
from flowstate.core.navigation import resolve_next
from flowstate.core.gate import (
    DEFAULT_STATUS_MESSAGE,
    GateState,
    Control,
    SubmissionGate,
)

__all__ = [
    # Errors
    "FlowError",
    "ConfigLoadError",
    "MissingWebhook",
    "InvalidVariableJson",
    "RequestFailed",
    "MissingDestination",
    # Store
    "STORAGE_KEY",
    "SessionState",
    "SessionStore",
    "StorageBackend",
    "MemoryStorage",
    "FileStorage",
    "Ok",
    "Corrupt",
    # Composer
    "VariableSource",
    "compose",
    "parse_variables",
    "page_context_variables",
    "build_request_variables",
    # Normalizer
    "Matched",
    "NO_MATCH",
    "ArchiveTitle",
    "NormalizedResponse",
    "unwrap_response",
    "normalize",
    "normalize_response",
    "find_titles",
    "normalize_title",
    "extract_titles",
    "extract_entry_data",
    # Navigation
    "resolve_next",
    # Gate
    "DEFAULT_STATUS_MESSAGE",
    "GateState",
    "Control",
    "SubmissionGate",
]
