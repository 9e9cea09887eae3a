"""
Keel CLI commands, driven through click's CliRunner against registries
defined in throwaway modules.
"""

import textwrap

import click
import pytest
from click.testing import CliRunner

from keel.cli.__main__ import cli, load_registry


WIRING_OK = """
from keel import ContextType, Registry, RegistryConfig


def build():
    registry = Registry(config=RegistryConfig(emit_diagnostics=False))
    registry.create_provider("Logger", ContextType.CONTEXT_FREE)
    registry.create_provider("Store", ContextType.PRIVILEGED, {"dependencies": ["Logger"]})
    registry.create_provider("Game", ContextType.CONTEXT_FREE, {"dependencies": ["Store"]})
    return registry


registry = build()
not_a_registry = 42
"""

WIRING_CYCLE = """
from keel import ContextType, Registry, RegistryConfig


def build():
    registry = Registry(config=RegistryConfig(emit_diagnostics=False))
    registry.create_provider("A", ContextType.CONTEXT_FREE, {"dependencies": ["B"]})
    registry.create_provider("B", ContextType.CONTEXT_FREE, {"dependencies": ["A"]})
    registry.create_provider("C", ContextType.CONTEXT_FREE, {"dependencies": ["Ghost"]})
    return registry
"""

WIRING_FAILING = """
from keel import ContextType, Registry, RegistryConfig


def explode(component):
    raise RuntimeError("socket refused")


def build():
    registry = Registry(config=RegistryConfig(emit_diagnostics=False))
    registry.create_provider("Logger", ContextType.CONTEXT_FREE)
    registry.create_provider(
        "Network", ContextType.CONTEXT_FREE, {"dependencies": ["Logger"]},
        behavior={"on_start": explode},
    )
    registry.create_provider("Game", ContextType.CONTEXT_FREE, {"dependencies": ["Network"]})
    return registry
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def wiring(tmp_path, monkeypatch):
    for module, source in (
        ("keel_wiring_ok", WIRING_OK),
        ("keel_wiring_cycle", WIRING_CYCLE),
        ("keel_wiring_failing", WIRING_FAILING),
    ):
        (tmp_path / f"{module}.py").write_text(textwrap.dedent(source))
    monkeypatch.chdir(tmp_path)
    monkeypatch.syspath_prepend(str(tmp_path))
    return tmp_path


# ============================================================================
# Target loading
# ============================================================================

class TestLoadRegistry:

    def test_attribute(self):
        registry = load_registry("keel_wiring_ok:registry")
        assert registry.exists("Game")

    def test_factory(self):
        first = load_registry("keel_wiring_ok:build")
        second = load_registry("keel_wiring_ok:build")
        assert first is not second

    @pytest.mark.parametrize(
        "target",
        ["keel_wiring_ok", "keel_wiring_missing:build", "keel_wiring_ok:nope", "keel_wiring_ok:not_a_registry"],
    )
    def test_bad_target(self, target):
        with pytest.raises(click.BadParameter):
            load_registry(target)

    def test_bad_target_exit_code(self, runner):
        result = runner.invoke(cli, ["providers", "keel_wiring_ok:nope"])
        assert result.exit_code == 2


# ============================================================================
# Commands
# ============================================================================

class TestProvidersCommand:

    def test_lists_everything(self, runner):
        result = runner.invoke(cli, ["providers", "keel_wiring_ok:build"])
        assert result.exit_code == 0
        assert "Logger  [context_free]  depends on: -" in result.output
        assert "Store  [privileged]  depends on: Logger" in result.output
        assert "Total" in result.output

    def test_filter_by_context(self, runner):
        result = runner.invoke(cli, ["providers", "keel_wiring_ok:build", "--context", "privileged"])
        assert result.exit_code == 0
        assert "Store" in result.output
        assert "Game" not in result.output

    def test_filter_with_no_match(self, runner):
        result = runner.invoke(cli, ["providers", "keel_wiring_ok:build", "--context", "restricted"])
        assert "(none)" in result.output


class TestOrderCommand:

    def test_start_order(self, runner):
        result = runner.invoke(cli, ["order", "keel_wiring_ok:build"])
        assert result.exit_code == 0
        assert result.output.splitlines() == ["  1. Logger", "  2. Store", "  3. Game"]

    def test_stop_order(self, runner):
        result = runner.invoke(cli, ["order", "keel_wiring_ok:build", "--reverse"])
        assert result.output.splitlines() == ["  1. Game", "  2. Store", "  3. Logger"]

    def test_cycle(self, runner):
        result = runner.invoke(cli, ["order", "keel_wiring_cycle:build"])
        assert result.exit_code == 1
        assert "Circular dependency detected: A -> B -> A" in result.output


class TestCheckCommand:

    def test_valid(self, runner):
        result = runner.invoke(cli, ["check", "keel_wiring_ok:build"])
        assert result.exit_code == 0
        assert "Dependency graph is valid" in result.output

    def test_quiet(self, runner):
        result = runner.invoke(cli, ["--quiet", "check", "keel_wiring_ok:build"])
        assert result.exit_code == 0
        assert result.output == ""

    def test_reports_every_problem(self, runner):
        result = runner.invoke(cli, ["check", "keel_wiring_cycle:build"])
        assert result.exit_code == 1
        assert "'C' depends on 'Ghost', which is not registered" in result.output
        assert "Circular dependency: A -> B -> A" in result.output


class TestTreeAndGraphCommands:

    def test_tree(self, runner):
        result = runner.invoke(cli, ["tree", "keel_wiring_ok:build"])
        assert result.exit_code == 0
        assert result.output.splitlines()[0] == "├── Game"

    def test_tree_unknown_root(self, runner):
        result = runner.invoke(cli, ["tree", "keel_wiring_ok:build", "--root", "Nope"])
        assert result.exit_code == 1

    def test_graph_stdout(self, runner):
        result = runner.invoke(cli, ["graph", "keel_wiring_ok:build"])
        assert result.output.startswith("digraph DependencyGraph {")
        assert '"Store" -> "Logger";' in result.output

    def test_graph_file(self, runner, wiring):
        result = runner.invoke(cli, ["graph", "keel_wiring_ok:build", "-o", "deps.dot"])
        assert result.exit_code == 0
        assert (wiring / "deps.dot").read_text().startswith("digraph")


class TestBringupCommand:

    def test_success(self, runner):
        result = runner.invoke(cli, ["bringup", "keel_wiring_ok:build"])
        assert result.exit_code == 0
        assert result.output.count("3/3 succeeded") == 2

    def test_failures_exit_nonzero(self, runner):
        result = runner.invoke(cli, ["bringup", "keel_wiring_failing:build"])
        assert result.exit_code == 1
        assert "Network: socket refused" in result.output
        assert "2/3 succeeded" in result.output
        assert "1 lifecycle transition(s) failed" in result.output

    def test_abort_policy(self, runner):
        result = runner.invoke(cli, ["bringup", "keel_wiring_failing:build", "--policy", "abort"])
        assert result.exit_code == 1
        assert "start_all aborted after failure in: Network" in result.output

    def test_cycle(self, runner):
        result = runner.invoke(cli, ["bringup", "keel_wiring_cycle:build"])
        assert result.exit_code == 1


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output
