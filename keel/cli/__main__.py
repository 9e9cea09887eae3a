"""Keel CLI - Main Entry Point.

The `keel` command inspects a registry built by your own code.

Commands:
    providers - List registered components
    order     - Show start (or stop) order
    check     - Validate the dependency graph
    tree      - Show the dependency tree
    graph     - Export the dependency graph as Graphviz DOT
    bringup   - Start every component, report, then stop them again

TARGET is `module:attribute`, naming a Registry or a zero-argument
callable that returns one.
"""

import asyncio
import importlib
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from keel.context import ContextType
from keel.faults import Fault
from keel.lifecycle import BulkResult, FailurePolicy, OutcomeStatus
from keel.registry import Registry

from . import __cli_name__, __version__
from .colors import _CHECK, _CROSS, badge, bullet, dim, error, info, kv, section, success, warning

logger = logging.getLogger("keel.cli")


def load_registry(target: str) -> Registry:
    """
    Import `module:attribute` and return the Registry it names.

    The current directory is put on sys.path so local modules resolve.
    """
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise click.BadParameter(f"expected 'module:attribute', got '{target}'", param_hint="TARGET")

    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import '{module_name}': {e}", param_hint="TARGET") from e

    try:
        obj = getattr(module, attribute)
    except AttributeError:
        raise click.BadParameter(
            f"module '{module_name}' has no attribute '{attribute}'", param_hint="TARGET"
        ) from None

    if not isinstance(obj, Registry) and callable(obj):
        obj = obj()

    if not isinstance(obj, Registry):
        raise click.BadParameter(
            f"'{target}' is a {type(obj).__name__}, not a Registry", param_hint="TARGET"
        )

    logger.debug(f"Loaded registry from {target} ({len(obj)} providers)")
    return obj


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


# ============================================================================
# Group
# ============================================================================

@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Minimal output')
@click.pass_context
def cli(ctx, verbose: bool, quiet: bool):
    """Inspect and exercise component lifecycle registries.

    \b
    Quick start:
      keel providers myapp.wiring:registry
      keel order myapp.wiring:registry
      keel check myapp.wiring:build_registry
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet
    _configure_logging(verbose, quiet)


# ============================================================================
# Commands
# ============================================================================

@cli.command('providers')
@click.argument('target')
@click.option(
    '--context', 'context_type',
    type=click.Choice([c.value for c in ContextType]),
    help='Only list components of this context type',
)
def providers_cmd(target: str, context_type: Optional[str]):
    """List registered components with their context type and dependencies."""
    registry = load_registry(target)

    components = registry.get_providers()
    if context_type:
        components = {
            name: c for name, c in components.items()
            if c.context_type.value == context_type
        }

    section("Providers")
    if not components:
        dim("  (none)")
        return

    for name, component in components.items():
        deps = ", ".join(component.dependencies) or "-"
        bullet(f"{name}  [{component.context_type.value}]  depends on: {deps}")
    click.echo()
    kv("Total", str(len(components)))


@cli.command('order')
@click.argument('target')
@click.option('--reverse', is_flag=True, help='Show stop order (dependents first)')
def order_cmd(target: str, reverse: bool):
    """Show the order components are started (or stopped) in."""
    registry = load_registry(target)

    try:
        order = registry.topological_sort()
    except Fault as e:
        error(f"{_CROSS} {e.message}")
        sys.exit(1)

    if reverse:
        order.reverse()

    for index, name in enumerate(order, 1):
        click.echo(f"{index:>3}. {name}")


@cli.command('check')
@click.argument('target')
@click.pass_context
def check_cmd(ctx, target: str):
    """
    Validate the dependency graph.

    Checks:
    - Every declared dependency is registered
    - No cycles
    """
    registry = load_registry(target)
    graph = registry.graph
    problems = 0

    for name, missing in graph.missing_dependencies().items():
        for dep in missing:
            error(f"{_CROSS} '{name}' depends on '{dep}', which is not registered")
            problems += 1

    cycle = graph.find_cycle()
    if cycle:
        error(f"{_CROSS} Circular dependency: {' -> '.join(cycle + cycle[:1])}")
        problems += 1

    if problems:
        sys.exit(1)

    if not ctx.obj['quiet']:
        success(f"{_CHECK} Dependency graph is valid")
        status = registry.get_status()
        kv("Providers", str(status["total"]))
        for context_type, count in status["context_types"].items():
            kv(context_type, str(count), indent=4)


@cli.command('tree')
@click.argument('target')
@click.option('--root', help='Show only the tree below this component')
def tree_cmd(target: str, root: Optional[str]):
    """Show the dependency tree."""
    registry = load_registry(target)
    if root and not registry.exists(root):
        error(f"{_CROSS} Unknown provider '{root}'")
        sys.exit(1)
    click.echo(registry.graph.get_tree_view(root=root))


@cli.command('graph')
@click.argument('target')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write DOT to this file')
def graph_cmd(target: str, output: Optional[str]):
    """Export the dependency graph as Graphviz DOT."""
    registry = load_registry(target)
    dot = registry.export_dot()

    if output:
        Path(output).write_text(dot + "\n")
        success(f"{_CHECK} Graph exported to {output}")
        dim(f"  Render with: dot -Tpng {output} -o graph.png")
    else:
        click.echo(dot)


@cli.command('bringup')
@click.argument('target')
@click.option(
    '--policy',
    type=click.Choice([p.value for p in FailurePolicy]),
    default=None,
    help='Failure policy (defaults to the registry setting)',
)
def bringup_cmd(target: str, policy: Optional[str]):
    """Inject, start every component, report, then stop them again."""
    registry = load_registry(target)

    async def run() -> tuple[BulkResult, BulkResult]:
        await registry.inject_all_dependencies()
        started = await registry.start_all_providers(policy)
        stopped = await registry.stop_all_providers(policy)
        return started, stopped

    try:
        started, stopped = asyncio.run(run())
    except Fault as e:
        error(f"{_CROSS} {e.message}")
        sys.exit(1)

    _print_result("Start", started)
    _print_result("Stop", stopped)

    if not (started.ok and stopped.ok):
        failed = len(started.failed) + len(stopped.failed)
        click.echo()
        warning(f"{failed} lifecycle transition(s) failed")
        sys.exit(1)


def _print_result(title: str, result: BulkResult) -> None:
    styles = {
        OutcomeStatus.SUCCEEDED: "ok",
        OutcomeStatus.FAILED: "fail",
        OutcomeStatus.SKIPPED: "skip",
    }
    section(title)
    for outcome in result.outcomes:
        line = f"  {badge(outcome.status.value, style=styles[outcome.status])} {outcome.name}"
        if outcome.error is not None:
            line += f": {outcome.error}"
        click.echo(line)
    info(f"  {len(result.succeeded)}/{len(result.outcomes)} succeeded")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
