"""
Keel CLI - inspect and exercise registries defined in Python code.
"""

from keel import __version__

__cli_name__ = "keel"

__all__ = ["__version__", "__cli_name__"]
