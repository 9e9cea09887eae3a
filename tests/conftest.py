"""
Shared test fixtures and helpers for the Keel test suite.
"""

from typing import Any, Callable, Dict, List

import pytest

from keel import (
    ContextType,
    RecordingListener,
    Registry,
    RegistryConfig,
    RegistryDiagnostics,
    StaticContext,
)


# ============================================================================
# Hook Helpers
# ============================================================================


class HookRecorder:
    """Builds lifecycle hooks that append "<name>.<hook>" to a shared log."""

    def __init__(self):
        self.calls: List[str] = []

    def hooks(self, *, fail_on: tuple = ()) -> Dict[str, Callable[..., Any]]:
        def make(hook: str):
            async def run(component):
                if hook in fail_on:
                    raise RuntimeError(f"{component.name} {hook} failed")
                self.calls.append(f"{component.name}.{hook}")
            return run

        return {hook: make(hook) for hook in ("on_init", "on_start", "on_stop", "on_destroy")}

    def of(self, hook: str) -> List[str]:
        """Component names whose `hook` ran, in order."""
        suffix = f".{hook}"
        return [call[: -len(suffix)] for call in self.calls if call.endswith(suffix)]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def recorder() -> HookRecorder:
    return HookRecorder()


@pytest.fixture
def events() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def registry(events) -> Registry:
    """Registry in an unbound context with an in-memory event recorder."""
    return Registry(
        context=StaticContext(None),
        config=RegistryConfig(emit_diagnostics=False),
        diagnostics=RegistryDiagnostics([events]),
    )


@pytest.fixture
def game_registry(registry, recorder) -> Registry:
    """Logger <- Network <- Game, all context-free."""
    registry.create_provider("Logger", ContextType.CONTEXT_FREE, behavior=recorder.hooks())
    registry.create_provider(
        "Network",
        ContextType.CONTEXT_FREE,
        {"dependencies": ["Logger"]},
        behavior=recorder.hooks(),
    )
    registry.create_provider(
        "Game",
        ContextType.CONTEXT_FREE,
        {"dependencies": ["Network"]},
        behavior=recorder.hooks(),
    )
    return registry
