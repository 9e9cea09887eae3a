"""
Execution context types and oracles.

A single codebase may be deployed into two runtime roles (privileged and
restricted). Components declare which role they belong to; the registry asks
an ExecutionContext oracle which role the caller is in.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from enum import Enum
from typing import Iterator, Optional, Protocol, Union, runtime_checkable


class ContextType(str, Enum):
    """Declared execution-role restriction of a component."""

    PRIVILEGED = "privileged"      # Privileged role only (server side)
    RESTRICTED = "restricted"      # Restricted role only (client side)
    CONTEXT_FREE = "context_free"  # Either role


class ExecutionRole(str, Enum):
    """Role the calling code is executing in."""

    PRIVILEGED = "privileged"
    RESTRICTED = "restricted"


@runtime_checkable
class ExecutionContext(Protocol):
    """
    Execution-context oracle consumed by the registry.

    Implemented by the host environment.
    """

    def is_privileged(self) -> bool:
        """True if the caller runs in the privileged context."""
        ...

    def is_restricted(self) -> bool:
        """True if the caller runs in the restricted context."""
        ...


def coerce_role(role: Union[ExecutionRole, str, None]) -> Optional[ExecutionRole]:
    """Accept an ExecutionRole, its string value, or None."""
    if role is None or isinstance(role, ExecutionRole):
        return role
    return ExecutionRole(role)


def describe_context(context: ExecutionContext) -> str:
    """Human-readable name of the context the oracle reports."""
    if context.is_privileged():
        return ExecutionRole.PRIVILEGED.value
    if context.is_restricted():
        return ExecutionRole.RESTRICTED.value
    return "unbound"


class StaticContext:
    """
    Oracle with a fixed role.

    A role of None is an unbound context: both predicates are false and
    no context-typed lookup is rejected.
    """

    __slots__ = ("_role",)

    def __init__(self, role: Union[ExecutionRole, str, None] = None):
        self._role = coerce_role(role)

    @property
    def role(self) -> Optional[ExecutionRole]:
        return self._role

    def is_privileged(self) -> bool:
        return self._role is ExecutionRole.PRIVILEGED

    def is_restricted(self) -> bool:
        return self._role is ExecutionRole.RESTRICTED

    def __repr__(self) -> str:
        role = self._role.value if self._role else None
        return f"StaticContext(role={role!r})"


_current_role_var: ContextVar[Optional[ExecutionRole]] = ContextVar(
    "keel_execution_role",
    default=None,
)


class ContextVarContext:
    """
    Oracle reading the role from a context variable.

    Lets one process act in either role, e.g. in tests:

        context = ContextVarContext()
        with context.bind("restricted"):
            registry.get_provider("Hud")
    """

    def __init__(self, var: Optional[ContextVar] = None):
        self._var = var if var is not None else _current_role_var

    @property
    def role(self) -> Optional[ExecutionRole]:
        return self._var.get()

    def is_privileged(self) -> bool:
        return self._var.get() is ExecutionRole.PRIVILEGED

    def is_restricted(self) -> bool:
        return self._var.get() is ExecutionRole.RESTRICTED

    @contextmanager
    def bind(self, role: Union[ExecutionRole, str, None]) -> Iterator["ContextVarContext"]:
        """Run the block with `role` as the current role."""
        token = self._var.set(coerce_role(role))
        try:
            yield self
        finally:
            self._var.reset(token)
