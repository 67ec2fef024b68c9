# crafters_toolbox/cli/decorators/__init__.py
"""CLI decorators"""

from .project import find_project_root, require_project

__all__ = [
    'find_project_root',
    'require_project',
]
