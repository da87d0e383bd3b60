"""Severity levels for report entries."""

from enum import Enum, IntEnum


class Severity(IntEnum):
    """
    Totally ordered severity of a finding.

    Values are spaced widely so intermediate levels can be added without
    renumbering. ALL and NONE are filtering sentinels ("show everything" /
    "show nothing") and are never emitted by a check.
    """

    ALL = 0
    CORRECT = 100
    INFO = 500
    WARNING = 750
    PROBLEM = 1000
    NONE = 2000

    @property
    def is_sentinel(self) -> bool:
        return self in (Severity.ALL, Severity.NONE)

    @classmethod
    def parse(cls, value: "str | int | Severity") -> "Severity":
        """
        Parse a severity from its name or numeric value.

        Raises:
            ValueError: If the value names no severity level
        """
        if isinstance(value, Severity):
            return value
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[value.strip().upper()]
        except KeyError:
            names = ", ".join(level.name for level in cls)
            raise ValueError(f"Unknown severity '{value}' (expected one of: {names})") from None


class FindingKind(str, Enum):
    """What a finding is about.

    CONFIGURATION findings are PROBLEMs that block verification (missing
    metadata) rather than defects in the data itself.
    """

    DATA = "data"
    CONFIGURATION = "configuration"
