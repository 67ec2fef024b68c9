"""Component deployment commands"""

import asyncio
import signal
import sys
from typing import Any, Dict, List, Sequence

import click
from rich.markup import escape

from ..decorators import require_project
from ..utils.output import console, format_batch_result, format_component_list, format_json, print_error
from ...api.exceptions import ConfigError
from ...constants import EMOJI_SUCCESS, PROPERTIES_FILE
from ...core.manifest_engine import DeploymentManifest
from ...core.status import create_status_reporter
from ...models import BatchResult, Component, GitSource, HttpSource, LocalSource
from ...models.component import staging_path
from ...services.config_service import ConfigService
from ...services.deploy_service import DeploymentOrchestrator
from ...utils.async_utils import CancellationToken, run_async
from ...utils.git_utils import get_head_commit, is_git_checkout


@click.group()
@click.pass_context
def components(ctx):
    """Resolve, build and deploy server components

    Components are declared in crtb.properties.yml. `update` deploys the
    current state using cached sources; `pull` refreshes every source
    from its origin first. `import` declares staged directories that are
    not registered yet.
    """
    pass


async def _deploy(orchestrator: DeploymentOrchestrator,
                  selected: Sequence[Component],
                  pull: bool) -> BatchResult:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted")
    except (NotImplementedError, RuntimeError):
        # Signal handlers are only available on the main thread of Unix loops
        pass

    try:
        return await orchestrator.deploy(selected, pull=pull, token=token)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


def _run_batch(ctx: click.Context, names: Sequence[str], pull: bool, stream_logs: bool, as_json: bool) -> None:
    state = ctx.find_root().obj
    config_service: ConfigService = state.config_service
    config = config_service.config

    try:
        selected = config_service.select_components(names)
    except ConfigError as e:
        print_error("Cannot select components", e)
        sys.exit(1)

    unregistered = config_service.find_unregistered()
    if unregistered and not as_json:
        console.print(
            f"[yellow]The following components exist locally but are not registered in "
            f"{PROPERTIES_FILE} and were skipped: {escape(', '.join(c.component_id for c in unregistered))}[/yellow]"
        )
        console.print("[dim]Run 'crtb components import' to register them[/dim]")

    reporter = create_status_reporter(console)
    orchestrator = DeploymentOrchestrator(
        path_resolver=config_service.get_path_resolver(),
        server_type=config_service.server.type.value,
        deploy_config=config_service.server.type.deploy_config,
        runner_image=config.runner_image,
        reporter=reporter,
        stream_logs=stream_logs or config.stream_build_logs,
    )

    with reporter:
        result = run_async(_deploy(orchestrator, selected, pull))

    if as_json:
        format_json(result.to_dict())
    else:
        format_batch_result(result)

    if not result.is_success:
        sys.exit(1)


@components.command()
@click.argument('names', nargs=-1)
@click.option('--stream-logs', is_flag=True, help='Print build output line by line')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.pass_context
@require_project
def update(ctx, names, stream_logs, as_json):
    """Deploy components from their current local state

    Cached downloads and existing checkouts are reused; components whose
    cached download is already deployed are skipped.

    Examples:

        # Deploy everything
        crtb components update

        # Deploy a single plugin
        crtb components update pl:essentials
    """
    _run_batch(ctx, names, pull=False, stream_logs=stream_logs, as_json=as_json)


@components.command()
@click.argument('names', nargs=-1)
@click.option('--stream-logs', is_flag=True, help='Print build output line by line')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.pass_context
@require_project
def pull(ctx, names, stream_logs, as_json):
    """Refresh component sources from their origin and deploy

    Examples:

        # Re-download and rebuild everything
        crtb components pull

        # Refresh the world only
        crtb components pull world
    """
    _run_batch(ctx, names, pull=True, stream_logs=stream_logs, as_json=as_json)


def _describe_source(component: Component) -> str:
    source = component.source
    if isinstance(source, LocalSource):
        return f"local {source.path}"
    if isinstance(source, HttpSource):
        return f"http {source.url}"
    if isinstance(source, GitSource):
        ref = source.commit or source.branch or "HEAD"
        return f"git {source.url}@{ref}"
    return "-"


async def _collect_rows(config_service: ConfigService) -> List[Dict[str, Any]]:
    path_resolver = config_service.get_path_resolver()
    manifest = await DeploymentManifest.load(path_resolver.get_server_root())
    components_dir = path_resolver.get_components_dir()

    rows = []
    for component in config_service.components:
        source = _describe_source(component)
        if isinstance(component.source, GitSource):
            checkout = staging_path(components_dir, component)
            if is_git_checkout(checkout):
                head = await get_head_commit(checkout)
                if head:
                    source += f" ({head[:10]})"

        rows.append({
            "id": component.component_id,
            "source": source,
            "build": component.build.type,
            "deployed": [
                str(path_resolver.make_relative(p, path_resolver.get_server_root()))
                for p in manifest.get_paths(component.component_id)
            ],
        })
    return rows


@components.command(name='list')
@click.option('--json', 'as_json', is_flag=True, help='Print the list as JSON')
@click.pass_context
@require_project
def list_components(ctx, as_json):
    """List declared components and what they last deployed"""
    config_service: ConfigService = ctx.find_root().obj.config_service
    rows = run_async(_collect_rows(config_service))

    if as_json:
        format_json(rows)
        return

    server = config_service.server
    console.print(
        f"[bold]Server:[/bold] {server.type.value}"
        + (f" {server.version}" if server.version else "")
    )
    format_component_list(rows)


@components.command(name='import')
@click.argument('names', nargs=-1)
@click.pass_context
@require_project
def import_components(ctx, names):
    """Register staged components missing from crtb.properties.yml

    Directories under components/<kind>s/ become git components when they
    are checkouts with an origin remote, and local components otherwise.

    Examples:

        # Register everything that is staged but undeclared
        crtb components import

        # Register selected components only
        crtb components import arena pl:lobby
    """
    config_service: ConfigService = ctx.find_root().obj.config_service

    try:
        candidates = config_service.find_unregistered()
    except ConfigError as e:
        print_error("Cannot read components", e)
        sys.exit(1)

    if names:
        wanted = set(names)
        selected = [c for c in candidates if c.label in wanted or c.component_id in wanted]
        matched = {c.label for c in selected} | {c.component_id for c in selected}
        missing = sorted(wanted - matched)
        if missing:
            console.print(f"[yellow]Not available for import: {escape(', '.join(missing))}[/yellow]")
        candidates = selected

    if not candidates:
        console.print("[yellow]No unregistered components found[/yellow]")
        return

    imported = run_async(config_service.detect_sources(candidates))
    try:
        config_service.register_components(imported)
    except (ConfigError, OSError) as e:
        print_error(f"Cannot update {PROPERTIES_FILE}", e)
        sys.exit(1)

    for component in imported:
        console.print(f"  {escape(component.component_id)}: {escape(_describe_source(component))}")
    console.print(
        f"[green]{EMOJI_SUCCESS}[/green] Imported {len(imported)} component(s): "
        f"{escape(', '.join(c.component_id for c in imported))}"
    )
