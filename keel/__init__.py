"""
Keel - Component lifecycle registry.

Registers named, typed components, derives the dependency graph between
them, orders startup/shutdown by topological sort, enforces the
execution-context contract and drives each component through its lifecycle.

Key Features:
- Deterministic ordering (registration order breaks ties)
- Cycle detection reporting the exact traversal chain
- Context-checked lookup (privileged / restricted / context-free)
- Behavior attached by composition through per-component slots
- Best-effort or fail-fast bulk start/stop with per-component results
"""

__version__ = "0.1.0"

from .context import (
    ContextType,
    ExecutionRole,
    ExecutionContext,
    StaticContext,
    ContextVarContext,
)

from .component import (
    Component,
    ComponentMetadata,
    LifecycleState,
)

from .graph import (
    DependencyGraph,
)

from .lifecycle import (
    FailurePolicy,
    OutcomeStatus,
    ProviderOutcome,
    BulkResult,
)

from .diagnostics import (
    RegistryDiagnostics,
    RegistryEvent,
    RegistryEventType,
    ConsoleDiagnosticListener,
    RecordingListener,
)

from .config import (
    RegistryConfig,
    ConfigLoader,
)

from .registry import (
    Registry,
)

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ConfigFault,
    ConfigInvalidFault,
    RegistryFault,
    CircularDependencyFault,
    ServiceNotFoundFault,
    ServiceTypeMismatchFault,
    LifecycleFault,
    ComponentDestroyedFault,
    BulkLifecycleFault,
)

__all__ = [
    # Context
    "ContextType",
    "ExecutionRole",
    "ExecutionContext",
    "StaticContext",
    "ContextVarContext",

    # Components
    "Component",
    "ComponentMetadata",
    "LifecycleState",

    # Graph
    "DependencyGraph",

    # Bulk lifecycle
    "FailurePolicy",
    "OutcomeStatus",
    "ProviderOutcome",
    "BulkResult",

    # Diagnostics
    "RegistryDiagnostics",
    "RegistryEvent",
    "RegistryEventType",
    "ConsoleDiagnosticListener",
    "RecordingListener",

    # Config
    "RegistryConfig",
    "ConfigLoader",

    # Registry
    "Registry",

    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "ConfigInvalidFault",
    "RegistryFault",
    "CircularDependencyFault",
    "ServiceNotFoundFault",
    "ServiceTypeMismatchFault",
    "LifecycleFault",
    "ComponentDestroyedFault",
    "BulkLifecycleFault",
]
