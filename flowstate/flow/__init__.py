"""
Flow configuration module.

- Schema: FlowConfig, InitializationConfig, StepConfig
- Parser: FlowConfigParser for JSON/YAML documents
- Loader: FlowConfigLoader, reading fresh from a file or URL
"""

from flowstate.flow.schema import (
    FlowConfig,
    InitializationConfig,
    StepConfig,
)
from flowstate.flow.parser import (
    FlowConfigParser,
    FlowConfigLoader,
)

__all__ = [
    # Schema
    "FlowConfig",
    "InitializationConfig",
    "StepConfig",
    # Parser
    "FlowConfigParser",
    "FlowConfigLoader",
]
