# crafters_toolbox/cli/main.py
"""Main CLI entry point for crafters-toolbox"""

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click
from rich.logging import RichHandler

from ..__version__ import __version__
from ..constants import APP_NAME, ENV_LOG_LEVEL, LOG_FORMAT
from ..services.config_service import ConfigService
from .utils.output import console

# Import all commands
from .commands import components


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Setup logging configuration

    ``CRTB_LOG_LEVEL`` overrides the level picked from the flags.

    Args:
        verbose: Enable verbose output (INFO level)
        debug: Enable debug output (DEBUG level)
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    env_level = os.environ.get(ENV_LOG_LEVEL)
    if env_level:
        level = logging.getLevelName(env_level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    # Configure rich handler
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            RichHandler(
                console=console,
                show_time=debug,
                show_path=debug,
                rich_tracebacks=True,
                tracebacks_suppress=[click]
            )
        ]
    )

    # Adjust third-party loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


class Context:
    """CLI context object

    The project itself is loaded by the ``require_project`` decorator of
    the commands that need it.
    """

    def __init__(self, project_root: Optional[Path] = None):
        self.project_root = project_root
        self.config_service: Optional[ConfigService] = None
        self.verbose: bool = False
        self.debug: bool = False


@click.group(name=APP_NAME)
@click.option('--project-root', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Project directory (default: nearest directory with crtb.properties.yml)')
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('-d', '--debug', is_flag=True, help='Enable debug output')
@click.option('-q', '--quiet', is_flag=True, help='Suppress all output except errors')
@click.version_option(__version__, prog_name=APP_NAME)
@click.pass_context
def cli(ctx, project_root, verbose, debug, quiet):
    """Crafters Toolbox - Assemble a game server from declared components

    Worlds, datapacks, plugins, resource packs and mods are resolved from
    local directories, HTTP downloads or git repositories, optionally built
    in a container, and deployed into the server tree.
    """
    # Setup logging
    if quiet:
        logging.disable(logging.WARNING)
    else:
        setup_logging(verbose=verbose, debug=debug)

    ctx.obj = Context(project_root.resolve() if project_root else None)
    ctx.obj.verbose = verbose
    ctx.obj.debug = debug


# Register commands
cli.add_command(components.components)


def main():
    """Main entry point for the CLI application

    This function handles:
    - Keyboard interrupts
    - Unexpected exceptions with proper error display
    """
    try:
        cli(prog_name=APP_NAME)

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)

    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        if '--debug' in sys.argv or '-d' in sys.argv:
            console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
