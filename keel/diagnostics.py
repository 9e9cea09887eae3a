"""
Registry diagnostics - observability and event tracking.
"""

import dataclasses
import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger("keel.diagnostics")


class RegistryEventType(Enum):
    """Types of registry events."""
    REGISTRATION = "registration"
    INJECTION = "injection"
    LIFECYCLE_START = "lifecycle_start"
    LIFECYCLE_STOP = "lifecycle_stop"
    LIFECYCLE_DESTROY = "lifecycle_destroy"
    LIFECYCLE_FAILURE = "lifecycle_failure"


@dataclasses.dataclass
class RegistryEvent:
    """A diagnostic event emitted by a registry."""
    type: RegistryEventType
    name: str
    timestamp: float = dataclasses.field(default_factory=time.time)
    duration: Optional[float] = None
    error: Optional[BaseException] = None
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)


class DiagnosticListener(Protocol):
    """Interface for registry diagnostic listeners."""
    def on_event(self, event: RegistryEvent) -> None:
        """Called when a registry event occurs."""
        ...


class ConsoleDiagnosticListener:
    """Diagnostic listener that writes events to the logging system."""
    def __init__(self, log_level: int = logging.DEBUG):
        self.log_level = log_level

    def on_event(self, event: RegistryEvent) -> None:
        if event.type == RegistryEventType.REGISTRATION:
            context_type = event.metadata.get("context_type")
            logger.log(self.log_level, f"Registered '{event.name}' ({context_type})")
        elif event.type == RegistryEventType.INJECTION:
            deps = ", ".join(event.metadata.get("dependencies", [])) or "none"
            logger.log(self.log_level, f"Injected dependencies into '{event.name}': {deps}")
        elif event.type == RegistryEventType.LIFECYCLE_START:
            logger.log(self.log_level, f"✓ Started '{event.name}' in {event.duration:.4f}s")
        elif event.type == RegistryEventType.LIFECYCLE_STOP:
            logger.log(self.log_level, f"✓ Stopped '{event.name}' in {event.duration:.4f}s")
        elif event.type == RegistryEventType.LIFECYCLE_DESTROY:
            logger.log(self.log_level, f"Destroyed '{event.name}'")
        elif event.type == RegistryEventType.LIFECYCLE_FAILURE:
            operation = event.metadata.get("operation", "lifecycle")
            logger.log(logging.ERROR, f"✗ Failed to {operation} '{event.name}': {event.error}")


class RecordingListener:
    """Keeps every event in memory. Useful for tests and tooling."""
    def __init__(self):
        self.events: List[RegistryEvent] = []

    def on_event(self, event: RegistryEvent) -> None:
        self.events.append(event)

    def names(self, event_type: RegistryEventType) -> List[str]:
        """Component names of recorded events of one type, in order."""
        return [e.name for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()


class RegistryDiagnostics:
    """Coordinator for registry diagnostic listeners."""
    def __init__(self, listeners: Optional[List[DiagnosticListener]] = None):
        self._listeners: List[DiagnosticListener] = list(listeners or [])

    @property
    def listeners(self) -> List[DiagnosticListener]:
        return list(self._listeners)

    def add_listener(self, listener: DiagnosticListener) -> None:
        """Add a diagnostic listener."""
        self._listeners.append(listener)

    def remove_listener(self, listener: DiagnosticListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event_type: RegistryEventType, name: str, **kwargs) -> None:
        """Emit a diagnostic event to all listeners."""
        event = RegistryEvent(type=event_type, name=name, **kwargs)
        for listener in self._listeners:
            try:
                listener.on_event(event)
            except Exception as e:
                # A broken listener must not break the registry
                logger.error(f"Diagnostic listener error: {e}")
