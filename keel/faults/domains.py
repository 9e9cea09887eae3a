"""
Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG: Registry settings
- REGISTRY: Creation, graph and behavior-table errors
- RESOLUTION: Component lookup errors
- CONTEXT: Execution context violations
- LIFECYCLE: State machine misuse and aborted bulk operations
"""

from __future__ import annotations

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            metadata=metadata,
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# REGISTRY Faults
# ============================================================================

class RegistryFault(Fault):
    """Generic registry fault (duplicate names, malformed declarations, ...)."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.REGISTRY,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class CircularDependencyFault(RegistryFault):
    """Circular dependency detected in the component graph."""

    def __init__(self, cycle: list[str], **kwargs):
        self.cycle = list(cycle)
        chain = self.cycle + self.cycle[:1]
        super().__init__(
            code="CIRCULAR_DEPENDENCY",
            message=f"Circular dependency detected: {' -> '.join(chain)}",
            severity=Severity.FATAL,
            metadata={"cycle": self.cycle, **kwargs.get("metadata", {})},
        )


# ============================================================================
# RESOLUTION Faults
# ============================================================================

class ServiceNotFoundFault(Fault):
    """Component (or one of its dependencies) is not registered."""

    def __init__(
        self,
        name: str,
        *,
        required_by: Optional[str] = None,
        message: Optional[str] = None,
        **kwargs,
    ):
        self.name = name
        self.required_by = required_by

        if message is None:
            if required_by:
                message = f"Dependency '{name}' required by '{required_by}' not found"
            else:
                message = f"Service '{name}' not found"

        super().__init__(
            code="SERVICE_NOT_FOUND",
            message=message,
            domain=FaultDomain.RESOLUTION,
            metadata={"name": name, "required_by": required_by, **kwargs.get("metadata", {})},
        )


# ============================================================================
# CONTEXT Faults
# ============================================================================

class ServiceTypeMismatchFault(Fault):
    """Context-restricted component requested from the wrong execution context."""

    def __init__(self, name: str, declared: str, actual: str, **kwargs):
        self.name = name
        self.declared = declared
        self.actual = actual
        super().__init__(
            code="SERVICE_TYPE_MISMATCH",
            message=(
                f"Service '{name}' type mismatch: declared {declared}, "
                f"requested from {actual} context"
            ),
            domain=FaultDomain.CONTEXT,
            metadata={
                "name": name,
                "declared": declared,
                "actual": actual,
                **kwargs.get("metadata", {}),
            },
        )


# ============================================================================
# LIFECYCLE Faults
# ============================================================================

class LifecycleFault(Fault):
    """Base class for lifecycle faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.LIFECYCLE,
            metadata=metadata,
        )


class ComponentDestroyedFault(LifecycleFault):
    """Lifecycle transition requested on a destroyed component."""

    def __init__(self, name: str, operation: str):
        self.name = name
        super().__init__(
            code="COMPONENT_DESTROYED",
            message=f"Cannot {operation} '{name}': component has been destroyed",
            metadata={"name": name, "operation": operation},
        )


class BulkLifecycleFault(LifecycleFault):
    """Bulk start/stop aborted after a component failed."""

    def __init__(self, operation: str, result: Any):
        self.operation = operation
        self.result = result
        failed = [outcome.name for outcome in result.failed]
        super().__init__(
            code="BULK_OPERATION_ABORTED",
            message=f"{operation} aborted after failure in: {', '.join(failed)}",
            metadata={"operation": operation, "failed": failed},
        )
