"""
Keel CLI - styled output primitives built on Click.

    success(), error(), warning(), info(), dim()
    section(), kv(), bullet(), badge()

click.style handles NO_COLOR / TERM=dumb.
"""

from __future__ import annotations

import shutil
from typing import Optional

import click

_TERM_WIDTH: Optional[int] = None

_L_H = "\u2500"     # ─
_BULLET = "\u2022"  # •
_CHECK = "\u2713"   # ✓
_CROSS = "\u2717"   # ✗
_CIRCLE = "\u25cb"  # ○
_DOT = "\u00b7"     # ·


def _tw() -> int:
    """Terminal width, cached and clamped to a sane range."""
    global _TERM_WIDTH
    if _TERM_WIDTH is None:
        _TERM_WIDTH = max(40, min(shutil.get_terminal_size((80, 24)).columns, 120))
    return _TERM_WIDTH


def success(message: str) -> None:
    """Print success message in green."""
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    """Print error message in red (to stderr)."""
    click.echo(click.style(message, fg="red"), err=True)


def warning(message: str) -> None:
    """Print warning message in yellow."""
    click.echo(click.style(message, fg="yellow"))


def info(message: str) -> None:
    """Print info message in cyan."""
    click.echo(click.style(message, fg="cyan"))


def dim(message: str) -> None:
    """Print dimmed message."""
    click.echo(click.style(message, dim=True))


def section(title: str, *, width: Optional[int] = None, fg: str = "cyan") -> None:
    """
    Print a section header with a ruled line.

        ── Providers ─────────────────────────────
    """
    w = width or _tw()
    dashes = max(4, w - len(title) - 6)
    click.echo(click.style(f"{_L_H}{_L_H} {title} {_L_H * dashes}", fg=fg, bold=True))


def kv(key: str, value: str, *, key_width: int = 20, indent: int = 2) -> None:
    """
    Print an aligned key-value pair.

        Providers:          8
    """
    padding = " " * max(1, key_width - len(key) - 1)
    click.echo(f"{' ' * indent}{key}:{padding}{click.style(str(value), fg='cyan')}")


def bullet(text: str, *, indent: int = 2, fg: str = "white") -> None:
    """Print a bulleted list item."""
    click.echo(f"{' ' * indent}{click.style(_BULLET, fg='cyan')} {click.style(text, fg=fg)}")


def badge(label: str, *, style: str = "ok") -> str:
    """
    Return an inline badge string (not echoed).

        [✓ ok]  [✗ fail]  [○ skip]
    """
    colours = {
        "ok":   ("green",  _CHECK),
        "fail": ("red",    _CROSS),
        "skip": ("yellow", _CIRCLE),
    }
    fg, icon = colours.get(style, ("white", _DOT))
    return click.style(f"[{icon} {label}]", fg=fg)
