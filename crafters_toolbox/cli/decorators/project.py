"""Project context decorator for CLI commands"""

from functools import wraps
from pathlib import Path
from typing import Callable, Optional

import click

from ..utils.output import console
from ...api.exceptions import ConfigError
from ...constants import APP_NAME, EMOJI_ERROR, PROJECT_CONFIG_FILE, PROPERTIES_FILE
from ...services.config_service import ConfigService


def find_project_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Find the project root directory by looking for marker files

    Args:
        start_path: Starting directory (defaults to current directory)

    Returns:
        Project root path or None if not found
    """
    if start_path is None:
        start_path = Path.cwd()
    else:
        start_path = Path(start_path).resolve()

    # Check each directory up to and including the filesystem root
    for current in (start_path, *start_path.parents):
        if (current / PROPERTIES_FILE).exists() or (current / PROJECT_CONFIG_FILE).exists():
            return current

    return None


def require_project(func: Callable) -> Callable:
    """Decorator that ensures command runs in a valid project context

    The project root comes from ``--project-root`` when given, otherwise
    from the nearest directory holding a properties or config file. A
    loaded ConfigService is stored as ``ctx.obj.config_service``.

    Args:
        func: Command function to decorate

    Returns:
        Decorated function
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        state = ctx.find_root().obj

        project_root = state.project_root or find_project_root()
        if not project_root:
            console.print(
                f"{EMOJI_ERROR} Not in a {APP_NAME} project directory "
                f"(no {PROPERTIES_FILE} found)."
            )
            ctx.exit(1)

        try:
            config_service = ConfigService(project_root)
            config_service.load_config()
            config_service.load_properties()
        except (ConfigError, OSError) as e:
            console.print(f"{EMOJI_ERROR} Failed to load project: {e}")
            ctx.exit(1)

        state.project_root = Path(project_root)
        state.config_service = config_service
        if state.debug:
            console.print(f"[dim]Project root: {project_root}[/dim]")

        return func(*args, **kwargs)

    return wrapper
