"""
minimal42 CLI - plan and apply a module on this host.

Commands:
    minimal42 plan      - Show what would change
    minimal42 apply     - Converge the host
    minimal42 render    - Print the rendered configuration file
    minimal42 state     - Show recorded lifecycle and history
    minimal42 version   - Show version
"""

import importlib.util
import json
import socket
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click

from minimal42.core.config import ModuleConfig
from minimal42.core.content import TemplateRegistry
from minimal42.core.executor import APPLIED, FAILED, PLANNED, Executor, RunReport
from minimal42.core.planner import ModulePlan, Planner
from minimal42.core.platform import Platform
from minimal42.core.resource import Action
from minimal42.errors import PlanningError
from minimal42.logging import setup_logging
from minimal42.modules import MODULES, get_module
from minimal42.resources import SourceFetcher


def module_options(func):
    """Options shared by commands that build a plan."""
    options = [
        click.option('--module', 'module_name', default='shorewall',
                     type=click.Choice(sorted(MODULES)), help='Module to manage'),
        click.option('--params', 'params_file', type=click.Path(exists=True, dir_okay=False),
                     help='Python file defining module parameters'),
        click.option('--node', help='Node fqdn (default: this host)'),
        click.option('--pkg-version', help='Pin the package to this version'),
        click.option('--absent', is_flag=True, help='Remove package and configuration'),
        click.option('--noop', is_flag=True, help='Compute changes without applying'),
        click.option('--template', help='Template for the configuration file'),
        click.option('--option', 'extra_options', multiple=True, metavar='KEY=VALUE',
                     help='Template option (repeatable)'),
        click.option('--source', help='Source URI for the configuration file'),
        click.option('--source-dir', help='Source URI for the configuration directory'),
        click.option('--source-dir-purge', is_flag=True,
                     help='Remove files missing from --source-dir'),
        click.option('--my-class', help='Custom content provider'),
        click.option('--template-dir', multiple=True, type=click.Path(file_okay=False),
                     help='Extra template directory (repeatable)'),
        click.option('--log-level', default='WARNING', help='Log level'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx):
    """minimal42 - manage a package and its configuration."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@module_options
@click.option('--files-dir', type=click.Path(file_okay=False), help='Root for module:// sources')
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
def plan(files_dir: Optional[str], as_json: bool, **kwargs):
    """
    Show what would change without applying.

    Example:
        minimal42 plan
        minimal42 plan --pkg-version 5.2.3 --option opt_a=value_a
    """
    module_plan = _build_plan(**kwargs)
    executor = Executor(sources=SourceFetcher(files_dir))
    report = executor.apply(module_plan, dry_run=True)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _display_report(report)

    if not report.success:
        _fail(report, as_json)

    if as_json:
        return
    if report.planned:
        click.echo(f"\nPlan: {len(report.planned)} to change")
    else:
        click.secho("\nNo changes needed.", fg="green")


@cli.command()
@module_options
@click.option('--files-dir', type=click.Path(file_okay=False), help='Root for module:// sources')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation')
@click.option('--state/--no-state', 'track_state', default=True, help='Record lifecycle in the state store')
@click.option('--state-db', type=click.Path(dir_okay=False), help='State database path')
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
def apply(files_dir: Optional[str], yes: bool, track_state: bool, state_db: Optional[str],
          as_json: bool, **kwargs):
    """
    Converge the host.

    Example:
        minimal42 apply --yes
        minimal42 apply --absent --yes
    """
    module_plan = _build_plan(**kwargs)

    # With --json the prompt goes to stderr so stdout stays parseable
    if not yes:
        click.echo(f"Applying {kwargs['module_name']} ({module_plan.package.ensure})", err=as_json)
        if not click.confirm("Proceed with apply?", err=as_json):
            click.echo("Aborted.", err=as_json)
            return

    store = None
    if track_state:
        from minimal42.state import Store
        store = Store(state_db)

    executor = Executor(sources=SourceFetcher(files_dir), store=store)
    try:
        report = executor.apply(module_plan)
    finally:
        if store is not None:
            store.close()

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _display_report(report)

    if not report.success:
        _fail(report, as_json)

    if not as_json:
        click.secho(f"\nApply complete! ({report.duration:.2f}s)", fg="green")


@cli.command()
@module_options
def render(**kwargs):
    """Print the configuration file content a run would write."""
    module_plan = _build_plan(**kwargs)
    conf_file = module_plan.conf_file

    if conf_file.content is None:
        click.secho(f"{conf_file.title} has no rendered content ({conf_file.ensure}, "
                    f"source: {conf_file.source})", fg="yellow")
        return
    click.echo(conf_file.content, nl=False)


@cli.command()
def version():
    """Show minimal42 version."""
    from minimal42 import __version__
    click.echo(f"minimal42 version {__version__}")


@cli.command()
def platform_info():
    """Show detected platform information."""
    plat = Platform.detect()
    click.echo("Platform Information:")
    click.echo(f"  System:  {plat.system}")
    click.echo(f"  Distro:  {plat.distro}")
    click.echo(f"  Version: {plat.version}")
    click.echo(f"  Arch:    {plat.arch}")


@cli.group()
def state():
    """Show resource lifecycle and history."""
    pass


@state.command("list")
@click.option('--state-db', type=click.Path(dir_okay=False), help='State database path')
def state_list(state_db: Optional[str]):
    """List all managed resources."""
    from minimal42.state import Store

    with Store(state_db) as store:
        resources = store.list_resources()

        if not resources:
            click.echo("No managed resources found.")
            return

        click.echo(f"{'RESOURCE':<32} {'LIFECYCLE':<12} {'ENSURE':<12} {'LAST APPLIED'}")
        click.echo("-" * 80)

        for res in resources:
            click.echo(f"{res.id:<32} {res.lifecycle:<12} {res.ensure:<12} "
                       f"{res.applied_at.strftime('%Y-%m-%d %H:%M')}")


@state.command("history")
@click.argument("resource_id")
@click.option("--limit", default=10, help="Number of history entries to show")
@click.option('--state-db', type=click.Path(dir_okay=False), help='State database path')
def state_history(resource_id: str, limit: int, state_db: Optional[str]):
    """Show change history for a resource."""
    from minimal42.state import Store

    with Store(state_db) as store:
        history = store.get_history(resource_id, limit)

        if not history:
            click.echo(f"No history found for {resource_id}")
            return

        click.echo(f"History for {resource_id}:\n")

        for entry in history:
            symbol = "✓" if entry.success else "✗"
            click.echo(f"{entry.timestamp.strftime('%Y-%m-%d %H:%M:%S')} {symbol} "
                       f"{entry.action} by {entry.user}@{entry.hostname}")
            if entry.error:
                click.echo(f"  error: {entry.error}")
            for field, change in entry.changes.items():
                click.echo(f"    {field}: {change.get('from')} → {change.get('to')}")


def _build_plan(module_name: str, params_file: Optional[str], node: Optional[str],
                template_dir: tuple, log_level: str, **overrides) -> ModulePlan:
    """Build the plan from the params file and command line flags, or exit."""
    setup_logging(log_level)

    try:
        params = _load_params(params_file) if params_file else {}
    except Exception as e:
        click.secho(f"Error loading params: {e}", fg="red")
        sys.exit(1)

    params.update(_flag_params(**overrides))

    try:
        config = ModuleConfig.from_mapping(params)
        planner = Planner(
            get_module(module_name),
            fqdn=node or socket.getfqdn(),
            templates=TemplateRegistry(template_dir),
        )
        return planner.plan(config)
    except PlanningError as e:
        click.secho(f"Planning failed: {e}", fg="red")
        sys.exit(1)


def _flag_params(pkg_version, absent, noop, template, extra_options, source, source_dir,
                 source_dir_purge, my_class) -> Dict[str, Any]:
    """Parameters given as flags; unset flags are left out."""
    params: Dict[str, Any] = {
        "version": pkg_version,
        "absent": absent,
        "noop": noop,
        "template": template,
        "source": source,
        "source_dir": source_dir,
        "source_dir_purge": source_dir_purge,
        "my_class": my_class,
    }
    # Flags only switch things on; False means "not given"
    params = {key: value for key, value in params.items() if value not in (None, False)}

    if extra_options:
        options = {}
        for item in extra_options:
            key, sep, value = item.partition("=")
            if not sep or not key:
                raise click.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint="--option")
            options[key] = value
        params["options"] = options

    return params


def _load_params(params_file: str) -> Dict[str, Any]:
    """
    Load module parameters from a Python file.

    Public module-level names that match ModuleConfig fields are used;
    anything else is ignored.

    Example file:
        version = "5.2.3"
        options = {"opt_a": "value_a"}
    """
    params_path = Path(params_file).resolve()

    spec = importlib.util.spec_from_file_location("params", params_path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Could not load params: {params_file}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    fields = set(ModuleConfig.field_names())
    return {name: value for name, value in vars(module).items() if name in fields}


def _display_report(report: RunReport) -> None:
    for entry in report.resources:
        symbol = _action_symbol(entry.action) if entry.status in (APPLIED, PLANNED) else " "
        noop = " (noop)" if entry.noop else ""
        click.echo(f"  {symbol} {entry.id} [{entry.desired_state}] {entry.status}{noop}")

        if entry.status in (APPLIED, PLANNED):
            for change in entry.changes:
                click.echo(f"      {change.field}: {_short(change.from_value)} → {_short(change.to_value)}")
        if entry.error:
            click.secho(f"      error: {entry.error}", fg="red")


def _fail(report: RunReport, as_json: bool) -> None:
    """List failed resources and exit 1."""
    if not as_json:
        click.secho("\nErrors:", fg="red")
        for entry in report.resources:
            if entry.status == FAILED:
                click.secho(f"  ! {entry.id}: {entry.error}", fg="red")
    sys.exit(1)


def _short(
value: Any, width: int = 60) -> str:
    text = repr(value) if isinstance(value, str) else str(value)
    return text if len(text) <= width else text[:width - 3] + "..."


def _action_symbol(action: Action) -> str:
    if action == Action.CREATE:
        return click.style("+", fg="green")
    elif action == Action.UPDATE:
        return click.style("~", fg="yellow")
    elif action == Action.DELETE:
        return click.style("-", fg="red")
    else:
        return " "


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
