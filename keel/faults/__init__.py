"""
Keel faults - structured errors for the component registry.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
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
    # Core
    "Fault",
    "FaultDomain",
    "Severity",

    # Domains
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
