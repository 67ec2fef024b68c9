# crafters_toolbox/cli/commands/__init__.py
"""CLI commands"""

from . import components

__all__ = [
    "components",
]
