"""Main CLI entry point for ensembl-healthcheck.

Provides command group with global options and subcommands for healthcheck runs.
"""

import logging
from pathlib import Path

import click
import structlog

from ensembl_healthcheck import __version__
from ensembl_healthcheck.checks.registry import default_registry
from ensembl_healthcheck.config.loader import load_config
from ensembl_healthcheck.metadata.catalog import MetadataCatalog
from ensembl_healthcheck.cli.run_cmd import run


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to healthcheck configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """Ensembl healthcheck: release-time integrity checks for genomic databases.

    Runs registered checks against every configured database, collects
    findings by severity and team, and reports whether the release is fit.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    # Engine events go through the stdlib handlers configured above
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[structlog.dev.ConsoleRenderer(colors=False)],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display configuration summary and resolved database identities."""
    config_path = ctx.obj['config_path']

    click.echo(f"Ensembl Healthcheck v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)
        catalog = MetadataCatalog.from_config(config)

        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Databases under test:", bold=True))
        for identity in catalog.identities:
            previous = catalog.previous_version_of(identity)
            line = (
                f"  {identity.name}: species={identity.species_label}, "
                f"kind={identity.kind.value}, schema={identity.schema_version}"
            )
            if previous is not None:
                line += f", previous={previous.name}"
            click.echo(line)
        click.echo()

        if catalog.previous_identities:
            click.echo(click.style("Previous-release databases:", bold=True))
            for identity in catalog.previous_identities:
                click.echo(f"  {identity.name}")
            click.echo()

        click.echo(click.style("Run Settings:", bold=True))
        click.echo(f"  Groups: {', '.join(config.run.groups) or '(none)'}")
        click.echo(f"  Checks: {', '.join(config.run.checks) or '(all in groups)'}")
        click.echo(f"  Max Workers: {config.run.max_workers}")
        click.echo(f"  Check Timeout: {config.run.check_timeout_seconds}s")
        click.echo(f"  Output Level: {config.run.output_level}")
        click.echo(f"  Output Directory: {config.output_dir}")

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


@cli.command('list-checks')
@click.option(
    '--group',
    'group',
    default=None,
    help='Only list checks in this group'
)
def list_checks(group):
    """List registered checks with their groups, teams and applicability."""
    registry = default_registry()
    checks = registry.select(groups=[group] if group else None)

    if not checks:
        click.echo(click.style(f"No checks in group '{group}'", fg='yellow'))
        return

    for check in checks:
        metadata = check.metadata
        click.echo(click.style(metadata.name, bold=True))
        if metadata.description:
            click.echo(f"  {metadata.description}")
        click.echo(f"  Groups: {', '.join(sorted(metadata.groups))}")
        click.echo(f"  Teams: {', '.join(t.value for t in metadata.teams)}")
        click.echo(f"  Priority: {metadata.priority.value}")
        click.echo(
            "  Applies to: "
            + ", ".join(sorted(kind.value for kind in metadata.applicable_kinds))
        )
    click.echo()
    click.echo(f"{len(checks)} checks")


# Register commands
cli.add_command(run)


if __name__ == '__main__':
    cli()
