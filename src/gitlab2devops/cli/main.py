"""Main CLI entry point for the GitLab to Azure DevOps migration tool."""

import sys
from pathlib import Path
from typing import List, Optional, Sequence

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..config.config import Config
from ..migration.engine import MigrationEngine
from ..migration.exceptions import MigrationValidationError
from ..migration.manifest import ManifestStore
from ..migration.state import list_project_states
from ..migration.workspace import WorkspaceLayout
from ..models.manifest import RunStatus
from ..models.results import BulkSummary, ProjectState, ResultStatus
from ..utils.logging import setup_logging
from ..utils.progress import RichProgressReporter

console = Console()

STATE_STYLES = {
    ProjectState.PREPARED: 'cyan',
    ProjectState.MIGRATED: 'yellow',
    ProjectState.COMPLETED: 'green',
    ProjectState.FAILED: 'red',
}

RUN_STYLES = {
    RunStatus.RUNNING: 'yellow',
    RunStatus.SUCCESS: 'green',
    RunStatus.PARTIAL: 'magenta',
    RunStatus.FAILED: 'red',
}


@click.group()
@click.version_option(version=__version__, prog_name='gitlab2devops')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging',
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """GitLab to Azure DevOps Migration Tool - prepare and migrate GitLab projects."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    setup_logging('DEBUG' if verbose else 'WARNING')


@cli.command()
@click.option(
    '--output',
    '-o',
    default='config.yaml',
    help='Output configuration file path',
)
def init(output: str) -> None:
    """Initialize a new configuration file."""
    console.print(
        Panel.fit(
            '[bold green]GitLab to Azure DevOps Migration[/bold green]\n'
            'Initializing configuration...',
            border_style='green',
        )
    )

    try:
        Config.create_template(output)
    except OSError as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(1)

    console.print(f'[green]✓[/green] Configuration template created at: {output}')
    console.print(
        f'[yellow]Please edit {output} with your GitLab and Azure DevOps details[/yellow]'
    )


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Check connectivity to GitLab and Azure DevOps."""
    try:
        config = _load_config(ctx)
        with _create_engine(config) as engine:
            engine.test_connectivity()
    except Exception as e:
        _fail(ctx, 'Validation failed', e)

    console.print('[green]✓[/green] Connectivity validation passed')


@cli.command()
@click.argument('source_path')
@click.option('--destination', '-d', default='', help='Destination project to check for conflicts')
@click.pass_context
def analyze(ctx: click.Context, source_path: str, destination: str) -> None:
    """Estimate the cost of migrating SOURCE_PATH without writing anything."""
    try:
        config = _load_config(ctx)
        with _create_engine(config) as engine:
            stats, estimate = engine.analyze(source_path, destination)
    except Exception as e:
        _fail(ctx, 'Analysis failed', e)

    table = Table(title=f'Analysis of {stats.path_with_namespace}')
    table.add_column('Field', style='cyan')
    table.add_column('Value', style='green')
    table.add_row('Default branch', str(stats.default_branch))
    table.add_row('Visibility', stats.visibility)
    table.add_row('Repository size', f'{estimate.size_mb} MB')
    table.add_row('LFS', f'{estimate.lfs_size_mb} MB' if stats.lfs_enabled else 'disabled')
    table.add_row('Open issues', str(stats.open_issues_count))
    table.add_row('Estimated duration', f'{estimate.estimated_duration_minutes} min')
    console.print(table)
    _print_messages('Warnings', estimate.warnings, 'yellow')
    _print_messages('Prerequisites', estimate.prerequisites, 'red')


@cli.command()
@click.argument('source_path')
@click.pass_context
def prepare(ctx: click.Context, source_path: str) -> None:
    """Prepare SOURCE_PATH: preflight report and local mirror."""
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)
        with _create_engine(config) as engine:
            result = engine.prepare(source_path)
    except Exception as e:
        _fail(ctx, 'Preparation failed', e)

    if not result.success:
        console.print(f'[red]✗[/red] {source_path}: {result.error_message}')
        sys.exit(1)

    console.print(
        f'[green]✓[/green] Prepared {source_path} ({result.repo_size_mb} MB, '
        f'mirror: {result.local_repo_path or "not materialized"})'
    )
    _print_messages('Warnings', result.warnings, 'yellow')


@cli.command()
@click.argument('destination_project')
@click.option('--description', default='', help='Project description')
@click.pass_context
def initialize(ctx: click.Context, destination_project: str, description: str) -> None:
    """Create DESTINATION_PROJECT in Azure DevOps when it does not exist."""
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)
        with _create_engine(config) as engine:
            created = engine.initialize(destination_project, description)
    except Exception as e:
        _fail(ctx, 'Initialization failed', e)

    if created:
        console.print(f'[green]✓[/green] Creation of {destination_project} queued')
    else:
        console.print(f'[yellow]Project {destination_project} already exists[/yellow]')


@cli.command()
@click.argument('source_path')
@click.argument('destination_project')
@click.option('--repo-name', default=None, help='Repository name in Azure DevOps')
@click.pass_context
def migrate(
    ctx: click.Context, source_path: str, destination_project: str, repo_name: Optional[str]
) -> None:
    """Push the prepared mirror of SOURCE_PATH into DESTINATION_PROJECT."""
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)
        with _create_engine(config) as engine:
            result = engine.migrate(source_path, destination_project, repo_name)
    except Exception as e:
        _fail(ctx, 'Migration failed', e)

    if not result.success:
        console.print(f'[red]✗[/red] {source_path}: {result.error_message}')
        sys.exit(1)

    verified = '[green]verified[/green]' if result.verified else '[yellow]not verified[/yellow]'
    console.print(
        f'[green]✓[/green] Migrated {source_path} -> '
        f'{destination_project}/{result.repo_name} ({verified})'
    )
    _print_messages('Warnings', result.warnings, 'yellow')


@cli.command('bulk-prepare')
@click.argument('destination_project')
@click.argument('project_paths', nargs=-1)
@click.option(
    '--file', '-f', 'paths_file', type=click.Path(exists=True), help='File with one project path per line'
)
@click.option('--yes', '-y', is_flag=True, help='Reuse an existing batch workspace without asking')
@click.pass_context
def bulk_prepare(
    ctx: click.Context,
    destination_project: str,
    project_paths: Sequence[str],
    paths_file: Optional[str],
    yes: bool,
) -> None:
    """Prepare many projects for DESTINATION_PROJECT."""
    paths = list(project_paths) + _read_paths_file(paths_file)

    def confirm(batch_dir: Path) -> bool:
        if yes:
            return True
        return click.confirm(
            f'Batch workspace {batch_dir} already exists. '
            'Continue and update existing preparation?',
            default=False,
        )

    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)
        with _create_engine(config, confirm=confirm) as engine:
            summary = engine.bulk_prepare(paths, destination_project)
    except MigrationValidationError as e:
        console.print(f'[red]✗[/red] {e}')
        sys.exit(1)
    except Exception as e:
        _fail(ctx, 'Bulk preparation failed', e)

    _display_bulk_summary(summary, 'Bulk Preparation Summary')
    if summary.failure_count:
        sys.exit(1)


@cli.command('bulk-migrate')
@click.argument('destination_project')
@click.argument('project_paths', nargs=-1)
@click.option(
    '--file', '-f', 'paths_file', type=click.Path(exists=True), help='File with one project path per line'
)
@click.pass_context
def bulk_migrate(
    ctx: click.Context,
    destination_project: str,
    project_paths: Sequence[str],
    paths_file: Optional[str],
) -> None:
    """Migrate many prepared projects into DESTINATION_PROJECT.

    Without explicit paths, every project prepared successfully for
    DESTINATION_PROJECT is migrated.
    """
    paths = list(project_paths) + _read_paths_file(paths_file)

    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)
        with _create_engine(config) as engine:
            if not paths:
                paths = engine.bulk.prepared_paths(destination_project)
            summary = engine.bulk_migrate(paths, destination_project)
    except MigrationValidationError as e:
        console.print(f'[red]✗[/red] {e}')
        sys.exit(1)
    except Exception as e:
        _fail(ctx, 'Bulk migration failed', e)

    _display_bulk_summary(summary, 'Bulk Migration Summary')
    if summary.failure_count:
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the state of every project in the migrations directory."""
    layout = WorkspaceLayout(_migrations_dir(ctx))
    states = list_project_states(layout)

    if not states:
        console.print(f'[yellow]No projects found in {layout.root}[/yellow]')
        return

    table = Table(title='Project Status')
    table.add_column('Project', style='cyan')
    table.add_column('State')
    for name, state in states:
        if state is None:
            table.add_row(name, '[dim]unknown[/dim]')
        else:
            style = STATE_STYLES[state]
            table.add_row(name, f'[{style}]{state.value}[/{style}]')
    console.print(table)


@cli.command()
@click.pass_context
def runs(ctx: click.Context) -> None:
    """List recorded run manifests."""
    store = ManifestStore(WorkspaceLayout(_migrations_dir(ctx)))
    manifests = store.list_runs()

    if not manifests:
        console.print('[yellow]No runs recorded[/yellow]')
        return

    table = Table(title='Runs')
    table.add_column('Run ID', style='cyan')
    table.add_column('Mode')
    table.add_column('Status')
    table.add_column('Started')
    table.add_column('Duration')
    for manifest in manifests:
        style = RUN_STYLES[manifest.status]
        label = manifest.status.value
        if manifest.is_interrupted:
            label += ' (interrupted?)'
        table.add_row(
            manifest.run_id,
            manifest.mode.value,
            f'[{style}]{label}[/{style}]',
            manifest.start_time.strftime('%Y-%m-%d %H:%M:%S'),
            f'{manifest.duration_seconds}s' if manifest.duration_seconds is not None else '-',
        )
    console.print(table)


def _load_config(ctx: click.Context) -> Config:
    """Load configuration from file or environment."""
    config_path = ctx.obj.get('config_path')

    if config_path:
        return Config.from_file(config_path)

    default_paths = ['config.yaml', 'config.yml', '.gitlab2devops.yaml']
    for path in default_paths:
        if Path(path).exists():
            return Config.from_file(path)

    try:
        return Config.from_env()
    except ValueError:
        raise FileNotFoundError(
            'No configuration found. Use --config to specify a file or run '
            '"gitlab2devops init" to create one.'
        )


def _migrations_dir(ctx: click.Context) -> str:
    """Migrations root from configuration, defaulting to ./migrations."""
    try:
        return _load_config(ctx).migration.migrations_dir
    except (FileNotFoundError, ValueError):
        return 'migrations'


def _setup_logging_with_config(ctx: click.Context, config: Config) -> None:
    """Setup logging with configuration from config file."""
    verbose = ctx.obj.get('verbose', False)
    log_level = 'DEBUG' if verbose else config.logging.level
    setup_logging(
        level=log_level, log_file=config.logging.file, log_format=config.logging.format
    )


def _create_engine(config: Config, confirm=None) -> MigrationEngine:
    return MigrationEngine(
        config, progress=RichProgressReporter(console), confirm=confirm
    )


def _fail(ctx: click.Context, message: str, error: Exception) -> None:
    console.print(f'[red]✗[/red] {message}: {error}')
    if ctx.obj.get('verbose'):
        console.print_exception()
    sys.exit(1)


def _read_paths_file(paths_file: Optional[str]) -> List[str]:
    """Read project paths, skipping blank lines and ``#`` comments."""
    if not paths_file:
        return []
    lines = Path(paths_file).read_text(encoding='utf-8').splitlines()
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith('#')]


def _print_messages(title: str, messages: List[str], style: str) -> None:
    if not messages:
        return
    console.print(f'\n[{style}]{title} ({len(messages)}):[/{style}]')
    for message in messages:
        console.print(f'  • {message}')


def _display_bulk_summary(summary: BulkSummary, title: str) -> None:
    """Display bulk run results."""
    table = Table(title=title)
    table.add_column('Project', style='cyan')
    table.add_column('Status')
    table.add_column('Size (MB)', justify='right')
    table.add_column('Details')

    for entry in summary.results:
        if entry.status == ResultStatus.SUCCESS:
            table.add_row(
                entry.source_path,
                '[green]SUCCESS[/green]',
                str(entry.repo_size_mb),
                entry.default_branch or '',
            )
        else:
            table.add_row(
                entry.source_path, '[red]FAILED[/red]', '-', entry.error_message or ''
            )

    console.print(table)
    console.print(
        f'\n[blue]Total:[/blue] {summary.total_projects}  '
        f'[green]Succeeded:[/green] {summary.success_count}  '
        f'[red]Failed:[/red] {summary.failure_count}  '
        f'[blue]Success rate:[/blue] {summary.success_rate_percent}%  '
        f'[blue]Total size:[/blue] {summary.total_size_mb} MB'
    )


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[red]Interrupted by user[/red]')
        sys.exit(1)


if __name__ == '__main__':
    main()
