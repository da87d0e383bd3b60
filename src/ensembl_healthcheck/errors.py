"""Exception taxonomy for healthcheck runs.

Invariant violations are not exceptions: they are recorded as PROBLEM
report entries. The exceptions here describe the cases where a check
could not verify anything at all.
"""


class HealthcheckError(Exception):
    """Base class for all healthcheck errors."""


class ConnectivityError(HealthcheckError):
    """A database could not be reached or opened.

    Aborts only the task that hit it; the run and other tasks continue.
    """


class QueryError(HealthcheckError):
    """A query could not be executed (bad SQL, table missing in this schema).

    Attributes:
        sql: The statement that failed, if known
    """

    def __init__(self, message: str, sql: str | None = None):
        super().__init__(message)
        self.sql = sql


class ConfigurationError(HealthcheckError):
    """Required metadata is missing, e.g. no stable ID prefix for a species."""


class CheckTimeoutError(HealthcheckError):
    """A check exceeded its wall-clock budget and was interrupted."""
