"""
Registry diagnostics: listeners, event payloads, console logging.
"""

import logging

import pytest

from keel import (
    ConsoleDiagnosticListener,
    ContextType,
    RecordingListener,
    Registry,
    RegistryConfig,
    RegistryDiagnostics,
    RegistryEventType,
)


class BrokenListener:
    def on_event(self, event):
        raise RuntimeError("listener exploded")


class TestRegistryDiagnostics:

    def test_emit_reaches_all_listeners(self):
        first, second = RecordingListener(), RecordingListener()
        diagnostics = RegistryDiagnostics([first, second])

        diagnostics.emit(RegistryEventType.REGISTRATION, "A", metadata={"context_type": "privileged"})

        assert first.names(RegistryEventType.REGISTRATION) == ["A"]
        assert second.events[0].metadata == {"context_type": "privileged"}

    def test_remove_listener(self):
        recorder = RecordingListener()
        diagnostics = RegistryDiagnostics([recorder])
        diagnostics.remove_listener(recorder)
        diagnostics.remove_listener(recorder)
        diagnostics.emit(RegistryEventType.INJECTION, "A")
        assert recorder.events == []

    def test_broken_listener_does_not_break_emit(self, caplog):
        recorder = RecordingListener()
        diagnostics = RegistryDiagnostics([BrokenListener(), recorder])

        with caplog.at_level(logging.ERROR, logger="keel.diagnostics"):
            diagnostics.emit(RegistryEventType.REGISTRATION, "A")

        assert recorder.names(RegistryEventType.REGISTRATION) == ["A"]
        assert "listener exploded" in caplog.text

    def test_recording_listener_clear(self):
        recorder = RecordingListener()
        recorder.on_event(object())
        recorder.clear()
        assert recorder.events == []


class TestRegistryEvents:

    def test_registration_payload(self, registry, events):
        registry.create_provider("Net", ContextType.PRIVILEGED, {"dependencies": ["Log"]})
        event = events.events[0]
        assert event.type is RegistryEventType.REGISTRATION
        assert event.metadata == {"context_type": "privileged", "dependencies": ["Log"]}
        assert event.timestamp > 0

    @pytest.mark.asyncio
    async def test_transition_duration_recorded(self, game_registry, events):
        await game_registry.start_provider("Logger")
        started = events.events[-1]
        assert started.type is RegistryEventType.LIFECYCLE_START
        assert started.duration is not None and started.duration >= 0

    @pytest.mark.asyncio
    async def test_destroy_event(self, game_registry, events):
        await game_registry.destroy_provider("Game")
        assert events.names(RegistryEventType.LIFECYCLE_DESTROY) == ["Game"]


class TestConsoleListener:

    @pytest.mark.asyncio
    async def test_default_registry_logs_events(self, caplog):
        registry = Registry(config=RegistryConfig(emit_diagnostics=True))

        with caplog.at_level(logging.DEBUG, logger="keel.diagnostics"):
            registry.create_provider("Logger", ContextType.CONTEXT_FREE)
            await registry.start_provider("Logger")

        assert "Registered 'Logger' (context_free)" in caplog.text
        assert "Started 'Logger'" in caplog.text

    @pytest.mark.asyncio
    async def test_failure_logged_as_error(self, caplog):
        def explode(component):
            raise RuntimeError("no disk")

        registry = Registry(config=RegistryConfig(emit_diagnostics=True))
        registry.create_provider("Logger", ContextType.CONTEXT_FREE, behavior={"on_start": explode})

        with caplog.at_level(logging.ERROR, logger="keel.diagnostics"):
            with pytest.raises(RuntimeError):
                await registry.start_provider("Logger")

        assert "Failed to start 'Logger': no disk" in caplog.text

    def test_disabled_by_config(self):
        registry = Registry(config=RegistryConfig(emit_diagnostics=False))
        assert registry.diagnostics.listeners == []

    def test_enabled_by_config(self):
        registry = Registry(config=RegistryConfig(emit_diagnostics=True))
        assert isinstance(registry.diagnostics.listeners[0], ConsoleDiagnosticListener)
