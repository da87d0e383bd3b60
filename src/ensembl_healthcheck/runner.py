"""Check runner: plans (database, check) tasks and executes them in parallel."""

import threading
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import structlog

from ensembl_healthcheck.checks.base import Check, CheckContext
from ensembl_healthcheck.checks.registry import CheckRegistry
from ensembl_healthcheck.errors import (
    CheckTimeoutError,
    ConfigurationError,
    ConnectivityError,
    QueryError,
)
from ensembl_healthcheck.metadata.catalog import MetadataCatalog
from ensembl_healthcheck.metadata.check import applies
from ensembl_healthcheck.metadata.identity import DatabaseIdentity
from ensembl_healthcheck.persistence.session import DatabaseSession, SessionPool
from ensembl_healthcheck.report.aggregator import ReportAggregator
from ensembl_healthcheck.report.entry import CheckOutcome, TaskStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlannedTask:
    """One check to run against one database."""

    identity: DatabaseIdentity
    check: Check

    @property
    def key(self) -> tuple[str, str]:
        return (self.identity.name, self.check.metadata.name)


@dataclass
class RunResult:
    """What a run produced; the aggregator holds the detailed findings."""

    aggregator: ReportAggregator
    tasks: list[PlannedTask]
    duration_seconds: float

    @property
    def passed(self) -> bool:
        """False if any planned check FAILED or could not be verified."""
        return not self.aggregator.has_failures()

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1


class CheckRunner:
    """
    Runs every applicable check against every database under test.

    Each (database, check) pair is an independent task with its own
    database session. Tasks share only the append-only aggregator. Within a
    task, queries run sequentially. A task that exceeds the per-check
    budget is interrupted and recorded as ERROR without affecting others.
    """

    def __init__(
        self,
        registry: CheckRegistry,
        catalog: MetadataCatalog,
        aggregator: ReportAggregator | None = None,
        groups: Iterable[str] = ("release",),
        check_names: Iterable[str] | None = None,
        max_workers: int = 4,
        check_timeout: float | None = None,
    ):
        """
        Initialize the runner.

        Args:
            registry: Checks available to the run
            catalog: Resolved database identities
            aggregator: Sink for findings (a new one if None)
            groups: Selected check groups
            check_names: Restrict to these checks (None or empty = all)
            max_workers: Parallel tasks
            check_timeout: Wall-clock seconds per task (None = unlimited)
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.registry = registry
        self.catalog = catalog
        self.aggregator = aggregator if aggregator is not None else ReportAggregator()
        self.groups = frozenset(groups)
        self.check_names = list(check_names or [])
        self.max_workers = max_workers
        self.check_timeout = check_timeout

    def plan(self, identities: Iterable[DatabaseIdentity] | None = None) -> list[PlannedTask]:
        """
        Applicable (database, check) pairs, database-major in registration order.

        Args:
            identities: Databases to plan for (default: all under test)
        """
        if identities is None:
            identities = self.catalog.identities
        checks = self.registry.select(names=self.check_names)
        return [
            PlannedTask(identity, check)
            for identity in identities
            for check in checks
            if applies(check.metadata, identity, self.groups)
        ]

    def run(self, pool: SessionPool) -> RunResult:
        """
        Execute all planned tasks.

        Args:
            pool: Session source for every database of the run

        Returns:
            RunResult with the aggregator and planned tasks
        """
        start = time.monotonic()
        tasks = self.plan()
        logger.info(
            "run_start",
            databases=len(self.catalog.identities),
            tasks=len(tasks),
            groups=sorted(self.groups),
            max_workers=self.max_workers,
        )

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self.run_task, task, pool) for task in tasks]
            for future in futures:
                future.result()

        duration = time.monotonic() - start
        result = RunResult(self.aggregator, tasks, duration)
        logger.info(
            "run_complete",
            tasks=len(tasks),
            duration=f"{duration:.2f}s",
            status="PASSED" if result.passed else "FAILED",
            **self.aggregator.summary()["status_counts"],
        )
        return result

    def run_task(self, task: PlannedTask, pool: SessionPool) -> CheckOutcome:
        """
        Run one check against one database and record its outcome.

        Never raises: connectivity, query and unexpected errors become an
        ERROR outcome; a ConfigurationError becomes a configuration PROBLEM.
        """
        check = task.check
        identity = task.identity
        reporter = self.aggregator.reporter(check.metadata, identity)
        sessions: list[DatabaseSession] = []
        timer = None
        status = TaskStatus.ERROR
        error = None
        start = time.monotonic()

        try:
            session = pool.session(identity.name)
            sessions.append(session)

            previous_identity = None
            previous_session = None
            if check.needs_previous_version:
                previous_identity = self.catalog.previous_version_of(identity)
                if previous_identity is not None:
                    previous_session = pool.session(previous_identity.name)
                    sessions.append(previous_session)

            ctx = CheckContext(
                metadata=check.metadata,
                identity=identity,
                session=session,
                reporter=reporter,
                catalog=self.catalog,
                previous_identity=previous_identity,
                previous_session=previous_session,
            )

            if self.check_timeout is not None:
                timer = threading.Timer(self.check_timeout, _interrupt_all, args=(sessions,))
                timer.daemon = True
                timer.start()

            passed = check.run(ctx)
            status = TaskStatus.PASSED if passed else TaskStatus.FAILED

        except CheckTimeoutError:
            error = f"Timed out after {self.check_timeout}s"
        except ConfigurationError as e:
            reporter.configuration_problem(str(e))
            status = TaskStatus.FAILED
        except (ConnectivityError, QueryError) as e:
            error = str(e)
        except Exception as e:
            logger.exception("check_crashed", check=check.metadata.name, database=identity.name)
            error = f"{type(e).__name__}: {e}"
        finally:
            if timer is not None:
                timer.cancel()
            for session in sessions:
                session.close()

        duration = time.monotonic() - start
        outcome = CheckOutcome(
            check_name=check.metadata.name,
            database=identity,
            status=status,
            team=check.metadata.team,
            duration_seconds=duration,
            error=error,
        )
        self.aggregator.record_outcome(outcome)

        log = logger.warning if status == TaskStatus.ERROR else logger.info
        log(
            "check_finished",
            check=check.metadata.name,
            database=identity.name,
            status=status.value,
            duration=f"{duration:.2f}s",
            error=error,
        )
        return outcome


def _interrupt_all(sessions: list[DatabaseSession]) -> None:
    for session in list(sessions):
        session.interrupt()
