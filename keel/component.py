"""
Component - a single registered unit and its lifecycle state machine.

A component holds its identity, declared context type, metadata, a table of
resolved dependencies and a behavior table. Concrete logic is attached through
the behavior table (composition), never by subclassing:

    component.connect("on_start", open_socket)

Lifecycle hooks are the slots `on_init`, `on_start`, `on_stop` and
`on_destroy`. Each is called with the component as its only argument and may
be a plain function or a coroutine function.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from .context import ContextType
from .faults import ComponentDestroyedFault, RegistryFault, ServiceNotFoundFault

logger = logging.getLogger("keel.component")

# Behavior-table slots driven by the lifecycle methods
HOOK_INIT = "on_init"
HOOK_START = "on_start"
HOOK_STOP = "on_stop"
HOOK_DESTROY = "on_destroy"

DEFAULT_MAX_DEPENDENCIES = 100


class LifecycleState(str, Enum):
    """Lifecycle states. DESTROYED is terminal."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPED = "stopped"
    DESTROYED = "destroyed"


@dataclass(frozen=True, slots=True)
class ComponentMetadata:
    """
    Immutable component metadata.

    `dependencies` is the ordered list of component names this component
    declares; `extras` holds any free-form fields supplied at creation.
    """
    name: str
    context_type: ContextType
    dependencies: Tuple[str, ...] = ()
    extras: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        name: str,
        context_type: ContextType,
        metadata: Optional[Mapping[str, Any]] = None,
        *,
        max_dependencies: int = DEFAULT_MAX_DEPENDENCIES,
    ) -> "ComponentMetadata":
        """
        Build metadata from a free-form mapping.

        Args:
            name: Component name
            context_type: Declared context type
            metadata: Mapping with an optional "dependencies" list and extras
            max_dependencies: Maximum number of declared dependencies

        Raises:
            RegistryFault: If the dependency declaration is malformed or too long
        """
        data = dict(metadata or {})
        data.pop("name", None)
        data.pop("context_type", None)
        raw = data.pop("dependencies", None)

        dependencies = normalize_dependencies(name, raw, max_dependencies)
        return cls(
            name=name,
            context_type=context_type,
            dependencies=dependencies,
            extras=MappingProxyType(data),
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Read a free-form metadata field."""
        return self.extras.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "context_type": self.context_type.value,
            "dependencies": list(self.dependencies),
            **self.extras,
        }


def normalize_dependencies(
    name: str,
    raw: Optional[Iterable[str]],
    max_dependencies: int = DEFAULT_MAX_DEPENDENCIES,
) -> Tuple[str, ...]:
    """
    Validate a declared dependency list.

    Order is kept; repeated names collapse to their first occurrence.
    """
    if raw is None:
        return ()

    if isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        raise RegistryFault(
            code="INVALID_DEPENDENCIES",
            message=f"Dependencies of '{name}' must be a list of names, got {type(raw).__name__}",
            metadata={"name": name},
        )

    declared = list(raw)
    if len(declared) > max_dependencies:
        raise RegistryFault(
            code="TOO_MANY_DEPENDENCIES",
            message=(
                f"'{name}' declares {len(declared)} dependencies, "
                f"the maximum is {max_dependencies}"
            ),
            metadata={"name": name, "count": len(declared), "max": max_dependencies},
        )

    result: list[str] = []
    for index, dependency in enumerate(declared):
        if not isinstance(dependency, str) or not dependency:
            raise RegistryFault(
                code="INVALID_DEPENDENCIES",
                message=f"Dependency #{index} of '{name}' is not a non-empty name: {dependency!r}",
                metadata={"name": name, "index": index},
            )
        if dependency not in result:
            result.append(dependency)

    return tuple(result)


class Component:
    """
    A named, typed, independently lifecycled unit.

    Created and owned by a Registry. Holds no reference to the registry;
    `resolved_dependencies` entries are non-owning references to other
    registry-owned components.
    """

    __slots__ = ("_metadata", "_behavior", "_dependencies", "_state")

    def __init__(
        self,
        metadata: ComponentMetadata,
        behavior: Optional[Mapping[str, Callable[..., Any]]] = None,
    ):
        self._metadata = metadata
        self._behavior: Dict[str, Callable[..., Any]] = {}
        self._dependencies: Dict[str, Component] = {}
        self._state = LifecycleState.UNINITIALIZED

        for slot, fn in (behavior or {}).items():
            self.connect(slot, fn)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._metadata.name

    @property
    def context_type(self) -> ContextType:
        return self._metadata.context_type

    @property
    def metadata(self) -> ComponentMetadata:
        return self._metadata

    @property
    def dependencies(self) -> Tuple[str, ...]:
        """Declared dependency names, in declaration order."""
        return self._metadata.dependencies

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state in (
            LifecycleState.INITIALIZED,
            LifecycleState.STARTED,
            LifecycleState.STOPPED,
        )

    @property
    def is_started(self) -> bool:
        return self._state is LifecycleState.STARTED

    @property
    def is_destroyed(self) -> bool:
        return self._state is LifecycleState.DESTROYED

    def __repr__(self) -> str:
        return (
            f"Component(name={self.name!r}, context_type={self.context_type.value}, "
            f"state={self._state.value})"
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Initialize once. No-op if already initialized or later."""
        if self._state is LifecycleState.DESTROYED:
            raise ComponentDestroyedFault(self.name, "init")
        if self._state is not LifecycleState.UNINITIALIZED:
            return

        await self._run_hook(HOOK_INIT)
        self._state = LifecycleState.INITIALIZED
        logger.debug(f"{self.name}: initialized")

    async def start(self) -> None:
        """Start, initializing first if needed. No-op if already started."""
        if self._state is LifecycleState.DESTROYED:
            raise ComponentDestroyedFault(self.name, "start")
        if self._state is LifecycleState.UNINITIALIZED:
            await self.init()
        if self._state is LifecycleState.STARTED:
            return

        await self._run_hook(HOOK_START)
        self._state = LifecycleState.STARTED
        logger.debug(f"{self.name}: started")

    async def stop(self) -> None:
        """Stop. No-op unless started."""
        if self._state is not LifecycleState.STARTED:
            return

        await self._run_hook(HOOK_STOP)
        self._state = LifecycleState.STOPPED
        logger.debug(f"{self.name}: stopped")

    async def destroy(self) -> None:
        """Stop, then mark the component unusable for further transitions."""
        if self._state is LifecycleState.DESTROYED:
            return

        await self.stop()
        await self._run_hook(HOOK_DESTROY)
        self._state = LifecycleState.DESTROYED
        logger.debug(f"{self.name}: destroyed")

    async def _run_hook(self, slot: str) -> None:
        hook = self._behavior.get(slot)
        if hook is None:
            return
        result = hook(self)
        if inspect.isawaitable(result):
            await result

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    @property
    def resolved_dependencies(self) -> Dict[str, "Component"]:
        """Snapshot of the resolved dependency table."""
        return dict(self._dependencies)

    def get_dependency(self, name: str) -> "Component":
        """
        Get a resolved dependency.

        Raises:
            ServiceNotFoundFault: If `name` has not been resolved
        """
        dependency = self._dependencies.get(name)
        if dependency is None:
            raise ServiceNotFoundFault(
                name,
                required_by=self.name,
                message=f"Dependency '{name}' not resolved for service '{self.name}'",
            )
        return dependency

    def set_dependency(self, name: str, component: "Component") -> None:
        """
        Insert or overwrite a resolved dependency.

        Raises:
            RegistryFault: If `name` is not in the declared dependency list
        """
        if name not in self._metadata.dependencies:
            raise RegistryFault(
                code="UNDECLARED_DEPENDENCY",
                message=f"'{self.name}' does not declare a dependency on '{name}'",
                metadata={"name": self.name, "dependency": name},
            )
        self._dependencies[name] = component

    def has_dependency(self, name: str) -> bool:
        return name in self._dependencies

    # ------------------------------------------------------------------
    # Behavior table
    # ------------------------------------------------------------------

    @property
    def behavior(self) -> Dict[str, Callable[..., Any]]:
        """Snapshot of the behavior table."""
        return dict(self._behavior)

    def connect(self, slot: str, fn: Callable[..., Any]) -> None:
        """Attach `fn` to `slot`, replacing any existing entry."""
        if not callable(fn):
            raise RegistryFault(
                code="SLOT_NOT_CALLABLE",
                message=f"Slot '{slot}' of '{self.name}' must be callable, got {type(fn).__name__}",
                metadata={"name": self.name, "slot": slot},
            )
        self._behavior[slot] = fn

    def has_slot(self, slot: str) -> bool:
        return slot in self._behavior

    def get_slot(self, slot: str) -> Callable[..., Any]:
        try:
            return self._behavior[slot]
        except KeyError:
            raise RegistryFault(
                code="SLOT_NOT_FOUND",
                message=f"'{self.name}' has no behavior slot '{slot}'",
                metadata={"name": self.name, "slot": slot},
            ) from None

    async def invoke(self, slot: str, *args: Any, **kwargs: Any) -> Any:
        """Call a behavior slot, awaiting the result if it is awaitable."""
        result = self.get_slot(slot)(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
