"""Run command: execute healthchecks against the configured databases.

Commands for:
- Resolving database identities and planning (database, check) tasks
- Running checks in parallel with a per-check wall-clock budget
- Writing TSV/Parquet reports and the provenance sidecar
"""

import logging
import sys
from pathlib import Path

import click

from ensembl_healthcheck import __version__
from ensembl_healthcheck.checks.registry import default_registry
from ensembl_healthcheck.config.loader import load_config_with_overrides
from ensembl_healthcheck.metadata.catalog import MetadataCatalog
from ensembl_healthcheck.output import format_text_report, write_report
from ensembl_healthcheck.persistence import RunProvenance, SessionPool
from ensembl_healthcheck.report.severity import Severity
from ensembl_healthcheck.runner import CheckRunner

logger = logging.getLogger(__name__)


@click.command('run')
@click.option(
    '--group',
    'groups',
    multiple=True,
    help='Check group to run (repeatable; default: run.groups from config)'
)
@click.option(
    '--check',
    'checks',
    multiple=True,
    help='Restrict the run to this check (repeatable)'
)
@click.option(
    '--output-level',
    default=None,
    help='Minimum severity shown and written (ALL, CORRECT, INFO, WARNING, PROBLEM, NONE)'
)
@click.option(
    '--output-dir',
    type=click.Path(path_type=Path),
    default=None,
    help='Directory for report files (default: output_dir from config)'
)
@click.option(
    '--workers',
    type=int,
    default=None,
    help='Number of parallel check tasks'
)
@click.option(
    '--timeout',
    type=float,
    default=None,
    help='Wall-clock seconds allowed per check'
)
@click.pass_context
def run(ctx, groups, checks, output_level, output_dir, workers, timeout):
    """Run healthchecks and report findings.

    Every applicable check runs against every database under test. A check
    applies when the database kind is one it supports and it belongs to a
    selected group.

    Pipeline steps:
    1. Load configuration and resolve database identities
    2. Plan (database, check) tasks
    3. Run tasks in parallel
    4. Write reports and provenance
    5. Print findings at or above the output level

    Exits with status 1 if any check FAILED or could not be run.

    Examples:

        # Release checks with the config's settings
        ensembl-healthcheck run

        # One group, only problems
        ensembl-healthcheck run --group compara_genomic --output-level PROBLEM

        # A single check with a tighter budget
        ensembl-healthcheck run --check StableID --group post_genebuild --timeout 60
    """
    config_path = ctx.obj['config_path']

    click.echo(click.style("=== Ensembl Healthcheck ===", bold=True))
    click.echo()

    pool = None
    try:
        # Step 1: Load configuration
        click.echo(click.style("Step 1: Loading configuration...", bold=True))
        overrides = {
            'output_dir': str(output_dir) if output_dir is not None else None,
            'run.groups': list(groups) if groups else None,
            'run.checks': list(checks) if checks else None,
            'run.output_level': output_level,
            'run.max_workers': workers,
            'run.check_timeout_seconds': timeout,
        }
        try:
            config = load_config_with_overrides(config_path, overrides)
        except Exception as e:
            click.echo(click.style(f"  Error loading config: {e}", fg='red'), err=True)
            sys.exit(1)

        catalog = MetadataCatalog.from_config(config)
        provenance = RunProvenance.from_config(config, __version__)
        click.echo(click.style(f"  Config loaded: {config_path}", fg='green'))
        click.echo(f"  Databases under test: {len(catalog.identities)}")
        click.echo(f"  Previous-release databases: {len(catalog.previous_identities)}")
        click.echo()

        # Step 2: Plan tasks
        click.echo(click.style("Step 2: Planning checks...", bold=True))
        registry = default_registry()
        try:
            runner = CheckRunner(
                registry,
                catalog,
                groups=config.run.groups,
                check_names=config.run.checks,
                max_workers=config.run.max_workers,
                check_timeout=config.run.check_timeout_seconds,
            )
            tasks = runner.plan()
        except KeyError as e:
            click.echo(click.style(f"  Error: {e.args[0]}", fg='red'), err=True)
            sys.exit(1)

        click.echo(f"  Groups: {', '.join(config.run.groups)}")
        click.echo(f"  Tasks planned: {len(tasks)}")
        if not tasks:
            click.echo(click.style("  No checks apply to the configured databases", fg='yellow'))
        click.echo()
        provenance.record_step('plan', {
            'groups': config.run.groups,
            'checks': config.run.checks,
            'tasks': len(tasks),
        })

        # Step 3: Run
        click.echo(click.style("Step 3: Running checks...", bold=True))
        pool = SessionPool.from_catalog(catalog)
        result = runner.run(pool)
        summary = result.aggregator.summary()
        status_counts = summary['status_counts']
        click.echo(
            f"  Completed {summary['total_tasks']} tasks in {result.duration_seconds:.1f}s: "
            f"{status_counts['PASSED']} passed, {status_counts['FAILED']} failed, "
            f"{status_counts['ERROR']} errors"
        )
        click.echo()
        provenance.record_step('run', {
            'duration_seconds': round(result.duration_seconds, 3),
            'status_counts': status_counts,
            'severity_counts': summary['severity_counts'],
        })

        # Step 4: Write reports
        click.echo(click.style("Step 4: Writing reports...", bold=True))
        min_severity = Severity.parse(config.run.output_level)
        paths = write_report(result.aggregator, config.output_dir, min_severity)
        provenance.record_step('write_report', {
            'files': [p.name for p in paths.values()],
        })
        provenance_path = provenance.save_sidecar(paths['tsv'])
        for path in list(paths.values()) + [provenance_path]:
            click.echo(f"  {path}")
        click.echo()

        # Step 5: Findings
        click.echo(click.style("Step 5: Findings", bold=True))
        click.echo(format_text_report(result.aggregator, min_severity))
        click.echo()

        if result.passed:
            click.echo(click.style("Healthcheck PASSED", fg='green', bold=True))
        else:
            click.echo(click.style("Healthcheck FAILED", fg='red', bold=True))
            sys.exit(result.exit_code)

    except Exception as e:
        click.echo(click.style(f"Run failed: {e}", fg='red'), err=True)
        logger.exception("Healthcheck run failed")
        sys.exit(1)

    finally:
        if pool is not None:
            pool.close()
