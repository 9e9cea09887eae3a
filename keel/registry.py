"""
Registry - owns components, their dependency graph and all orchestration.

Usage:
    registry = Registry(context=StaticContext("privileged"))

    registry.create_provider("Logger", ContextType.CONTEXT_FREE)
    registry.create_provider(
        "Network", ContextType.CONTEXT_FREE, {"dependencies": ["Logger"]}
    )

    await registry.inject_all_dependencies()
    await registry.start_all_providers()   # Logger, Network
    ...
    await registry.stop_all_providers()    # Network, Logger
"""

import logging
import time
from collections import Counter
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .component import Component, ComponentMetadata
from .config import ConfigLoader, RegistryConfig
from .context import ContextType, ExecutionContext, StaticContext, describe_context
from .diagnostics import ConsoleDiagnosticListener, RegistryDiagnostics, RegistryEventType
from .faults import (
    BulkLifecycleFault,
    CircularDependencyFault,
    RegistryFault,
    ServiceNotFoundFault,
    ServiceTypeMismatchFault,
)
from .graph import DependencyGraph
from .lifecycle import BulkResult, FailurePolicy, OutcomeStatus, coerce_policy

logger = logging.getLogger("keel.registry")

_TRANSITION_EVENTS = {
    "start": RegistryEventType.LIFECYCLE_START,
    "stop": RegistryEventType.LIFECYCLE_STOP,
    "destroy": RegistryEventType.LIFECYCLE_DESTROY,
}


class Registry:
    """
    Component lifecycle registry.

    Responsibilities:
    - Create components and derive dependency-graph edges
    - Context-checked lookup
    - Dependency injection
    - Ordered bulk start/stop (dependencies first / dependents first)
    - Single-component lifecycle delegation
    - Behavior-table patching

    Registries are plain objects: construct as many as needed.
    """

    def __init__(
        self,
        context: Optional[ExecutionContext] = None,
        config: Optional[RegistryConfig] = None,
        diagnostics: Optional[RegistryDiagnostics] = None,
    ):
        """
        Initialize registry.

        Args:
            context: Execution-context oracle (defaults to a StaticContext
                with the configured role)
            config: Registry settings
            diagnostics: Event coordinator (defaults to one logging through
                ConsoleDiagnosticListener when config.emit_diagnostics is set)
        """
        self.config = config or RegistryConfig()
        self.context = context if context is not None else StaticContext(self.config.role)
        self._components: Dict[str, Component] = {}
        self._graph = DependencyGraph()

        if diagnostics is None:
            diagnostics = RegistryDiagnostics()
            if self.config.emit_diagnostics:
                diagnostics.add_listener(ConsoleDiagnosticListener())
        self._diagnostics = diagnostics
        self.logger = logger

    @classmethod
    def from_settings(
        cls,
        paths: Optional[list] = None,
        *,
        env_prefix: str = "KEEL_",
        overrides: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
        diagnostics: Optional[RegistryDiagnostics] = None,
    ) -> "Registry":
        """Build a registry whose settings come from files, environment and overrides."""
        loader = ConfigLoader.load(paths=paths, env_prefix=env_prefix, overrides=overrides)
        return cls(context=context, config=loader.to_registry_config(), diagnostics=diagnostics)

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def diagnostics(self) -> RegistryDiagnostics:
        return self._diagnostics

    def __contains__(self, name: str) -> bool:
        return name in self._components

    def __len__(self) -> int:
        return len(self._components)

    # ------------------------------------------------------------------
    # Creation & lookup
    # ------------------------------------------------------------------

    def create_provider(
        self,
        name: str,
        context_type: Union[ContextType, str],
        metadata: Optional[Mapping[str, Any]] = None,
        behavior: Optional[Mapping[str, Callable[..., Any]]] = None,
    ) -> Component:
        """
        Create and register a component.

        Args:
            name: Unique component name
            context_type: Declared context type
            metadata: Free-form metadata; an optional "dependencies" list names
                the components this one depends on (they need not exist yet)
            behavior: Initial behavior table (lifecycle hooks and other slots)

        Returns:
            The new component

        Raises:
            RegistryFault: On duplicate name or malformed declaration
        """
        if not isinstance(name, str) or not name:
            raise RegistryFault(
                code="INVALID_NAME",
                message=f"Provider name must be a non-empty string, got {name!r}",
            )

        if name in self._components:
            raise RegistryFault(
                code="PROVIDER_EXISTS",
                message=f"Provider '{name}' already exists",
                metadata={"name": name},
            )

        try:
            context_type = ContextType(context_type)
        except ValueError:
            raise RegistryFault(
                code="INVALID_CONTEXT_TYPE",
                message=f"Unknown context type {context_type!r} for provider '{name}'",
                metadata={"name": name},
            ) from None

        meta = ComponentMetadata.build(
            name,
            context_type,
            metadata,
            max_dependencies=self.config.max_dependencies,
        )
        component = Component(meta, behavior)

        self._components[name] = component
        self._graph.add_node(name, meta.dependencies)

        self._diagnostics.emit(
            RegistryEventType.REGISTRATION,
            name,
            metadata={
                "context_type": context_type.value,
                "dependencies": list(meta.dependencies),
            },
        )
        return component

    def exists(self, name: str) -> bool:
        return name in self._components

    def get_provider(self, name: str) -> Component:
        """
        Look up a component, enforcing the execution-context contract.

        Raises:
            ServiceNotFoundFault: If no component is registered under `name`
            ServiceTypeMismatchFault: If the component may not be used from
                the caller's execution context
        """
        component = self._components.get(name)
        if component is None:
            raise ServiceNotFoundFault(name)

        self._check_context(component)
        return component

    def _check_context(self, component: Component) -> None:
        context_type = component.context_type

        if context_type is ContextType.CONTEXT_FREE:
            return

        if context_type is ContextType.PRIVILEGED and self.context.is_restricted():
            raise ServiceTypeMismatchFault(
                component.name, context_type.value, describe_context(self.context)
            )

        if context_type is ContextType.RESTRICTED and self.context.is_privileged():
            raise ServiceTypeMismatchFault(
                component.name, context_type.value, describe_context(self.context)
            )

    def get_providers(self) -> Dict[str, Component]:
        """Snapshot of all components, in registration order."""
        return dict(self._components)

    def get_client_providers(self) -> Dict[str, Component]:
        """Snapshot of RESTRICTED components."""
        return self._filter_providers(ContextType.RESTRICTED)

    def get_server_providers(self) -> Dict[str, Component]:
        """Snapshot of PRIVILEGED components."""
        return self._filter_providers(ContextType.PRIVILEGED)

    def get_module_providers(self) -> Dict[str, Component]:
        """Snapshot of CONTEXT_FREE components."""
        return self._filter_providers(ContextType.CONTEXT_FREE)

    def _filter_providers(self, context_type: ContextType) -> Dict[str, Component]:
        return {
            name: component
            for name, component in self._components.items()
            if component.context_type is context_type
        }

    # ------------------------------------------------------------------
    # Dependencies & behavior
    # ------------------------------------------------------------------

    async def inject_dependencies(self, name: str) -> None:
        """
        Resolve the declared dependencies of `name` into live references.

        Raises:
            ServiceNotFoundFault: If `name` or one of its dependencies is not registered
            ServiceTypeMismatchFault: If `name` or a dependency is context-restricted
                away from the caller
        """
        component = self.get_provider(name)

        for dependency_name in component.dependencies:
            if dependency_name not in self._components:
                raise ServiceNotFoundFault(dependency_name, required_by=name)

            component.set_dependency(dependency_name, self.get_provider(dependency_name))

        self._diagnostics.emit(
            RegistryEventType.INJECTION,
            name,
            metadata={"dependencies": list(component.dependencies)},
        )

    async def inject_all_dependencies(self) -> None:
        """Inject dependencies into every component, in dependency order."""
        for name in self.topological_sort():
            await self.inject_dependencies(name)

    def connect(self, name: str, slot: str, fn: Callable[..., Any]) -> None:
        """
        Attach `fn` to a behavior slot of `name`, replacing any existing entry.

        Raises:
            ServiceNotFoundFault / ServiceTypeMismatchFault: As for get_provider
        """
        self.get_provider(name).connect(slot, fn)

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def topological_sort(self) -> List[str]:
        """
        All component names, dependencies before dependents.

        Ties between independent subtrees follow registration order.

        Raises:
            CircularDependencyFault: If the graph contains a cycle
            ServiceNotFoundFault: If a declared dependency is not registered
        """
        return self._graph.topological_sort()

    # ------------------------------------------------------------------
    # Single-component lifecycle
    # ------------------------------------------------------------------

    async def start_provider(self, name: str) -> Component:
        component = self.get_provider(name)
        await self._transition(component, "start")
        return component

    async def stop_provider(self, name: str) -> None:
        component = self.get_provider(name)
        await self._transition(component, "stop")

    async def destroy_provider(self, name: str) -> None:
        """Destroy `name` and remove it from the registry and the graph."""
        component = self.get_provider(name)
        await self._transition(component, "destroy")
        self._remove(name)

    def _remove(self, name: str) -> None:
        self._components.pop(name, None)
        self._graph.remove_node(name)

    async def _transition(self, component: Component, operation: str) -> float:
        """Run one lifecycle method, emitting diagnostics. Returns duration."""
        started_at = time.perf_counter()
        try:
            await getattr(component, operation)()
        except Exception as e:
            self._diagnostics.emit(
                RegistryEventType.LIFECYCLE_FAILURE,
                component.name,
                duration=time.perf_counter() - started_at,
                error=e,
                metadata={"operation": operation},
            )
            raise

        duration = time.perf_counter() - started_at
        self._diagnostics.emit(_TRANSITION_EVENTS[operation], component.name, duration=duration)
        return duration

    # ------------------------------------------------------------------
    # Bulk lifecycle
    # ------------------------------------------------------------------

    async def start_all_providers(
        self, policy: Union[FailurePolicy, str, None] = None
    ) -> BulkResult:
        """
        Start every component in dependency order, one at a time.

        The order is computed once, up front: a cycle aborts the call before
        any component is touched. A declared dependency that is not
        registered takes its own slot in the order and fails there with
        ServiceNotFoundFault; every other component is still driven.

        Args:
            policy: CONTINUE records failures and keeps going; ABORT stops at
                the first failure and raises. Defaults to config.failure_policy.

        Returns:
            Per-component outcomes

        Raises:
            RegistryFault: If `policy` is not a known failure policy
            CircularDependencyFault: From the sort
            BulkLifecycleFault: Under ABORT, after the first failure
        """
        policy = self._resolve_policy(policy)
        order = self._graph.topological_sort(include_missing=True)
        return await self._run_bulk("start", order, policy)

    async def stop_all_providers(
        self, policy: Union[FailurePolicy, str, None] = None
    ) -> BulkResult:
        """Stop every component in reverse dependency order (dependents first)."""
        policy = self._resolve_policy(policy)
        order = self._graph.topological_sort(include_missing=True)
        return await self._run_bulk("stop", list(reversed(order)), policy)

    async def destroy_all_providers(self) -> BulkResult:
        """
        Destroy every component, dependents first, and empty the registry.

        Best-effort: failures are recorded, and a cyclic graph falls back to
        reverse registration order.
        """
        try:
            order = list(reversed(self._graph.topological_sort(skip_missing=True)))
        except CircularDependencyFault as e:
            self.logger.warning(f"Cannot order teardown ({e}); using reverse registration order")
            order = list(reversed(list(self._components)))

        result = await self._run_bulk("destroy", order, FailurePolicy.CONTINUE)
        for outcome in result.succeeded:
            self._remove(outcome.name)
        return result

    def _resolve_policy(self, policy: Union[FailurePolicy, str, None]) -> FailurePolicy:
        return coerce_policy(policy or self.config.failure_policy)

    def _bulk_target(self, name: str) -> Component:
        if name not in self._components:
            dependents = self._graph.dependents_of(name)
            raise ServiceNotFoundFault(name, required_by=dependents[0] if dependents else None)
        return self.get_provider(name)

    async def _run_bulk(
        self,
        operation: str,
        names: List[str],
        policy: FailurePolicy,
    ) -> BulkResult:
        result = BulkResult(operation=f"{operation}_all")

        self.logger.info(f"Running {operation} on {len(names)} providers...")

        for index, name in enumerate(names):
            try:
                component = self._bulk_target(name)
                duration = await self._transition(component, operation)
            except Exception as e:
                result.record(name, OutcomeStatus.FAILED, error=e)
                self.logger.error(f"  ✗ {name}: {operation} failed: {e}")

                if policy is FailurePolicy.ABORT:
                    for remaining in names[index + 1:]:
                        result.record(remaining, OutcomeStatus.SKIPPED)
                    raise BulkLifecycleFault(result.operation, result) from e
                continue

            result.record(name, OutcomeStatus.SUCCEEDED, duration=duration)
            self.logger.debug(f"  ↳ {name}: {operation} ok")

        if result.failed:
            self.logger.warning(
                f"{operation} finished with {len(result.failed)} failure(s) "
                f"out of {len(names)} providers"
            )
        else:
            self.logger.info(f"✅ {operation} finished for {len(names)} providers")

        return result

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_status(self) -> Dict[str, Any]:
        """
        Get registry status.

        Returns:
            Status dict with component counts by state and context type
        """
        components = self._components.values()
        return {
            "total": len(self._components),
            "context": describe_context(self.context),
            "states": dict(Counter(c.state.value for c in components)),
            "context_types": dict(Counter(c.context_type.value for c in components)),
        }

    def export_dot(self) -> str:
        """Graphviz DOT export, nodes grouped by context type."""
        return self._graph.export_dot(
            {name: c.context_type.value for name, c in self._components.items()}
        )
