"""Explicit registry of checks, keyed by name."""

from collections.abc import Iterable, Iterator

from ensembl_healthcheck.checks.base import Check


class CheckRegistry:
    """
    Name -> check map built once at startup from a static list.

    Registration order is preserved and is the order checks are planned in.
    """

    def __init__(self, checks: Iterable[Check] = ()):
        self._checks: dict[str, Check] = {}
        for check in checks:
            self.register(check)

    def register(self, check: Check) -> None:
        """
        Add a check.

        Raises:
            ValueError: If a check with the same name is already registered
        """
        name = check.metadata.name
        if name in self._checks:
            raise ValueError(f"Check registered twice: {name}")
        self._checks[name] = check

    def get(self, name: str) -> Check:
        try:
            return self._checks[name]
        except KeyError:
            raise KeyError(f"Unknown check: {name}") from None

    def names(self) -> list[str]:
        return list(self._checks)

    def groups(self) -> list[str]:
        """All group names used by registered checks, sorted."""
        return sorted({g for check in self._checks.values() for g in check.metadata.groups})

    def select(
        self,
        groups: Iterable[str] | None = None,
        names: Iterable[str] | None = None,
    ) -> list[Check]:
        """
        Checks matching a group and/or name selection.

        Args:
            groups: Keep checks in at least one of these groups (None = any)
            names: Keep only these checks (None or empty = any)

        Raises:
            KeyError: If a requested name is not registered
        """
        selected = list(self._checks.values())
        if names:
            wanted = [self.get(name) for name in names]
            selected = [check for check in selected if check in wanted]
        if groups is not None:
            group_set = set(groups)
            selected = [
                check for check in selected
                if not check.metadata.groups.isdisjoint(group_set)
            ]
        return selected

    def __iter__(self) -> Iterator[Check]:
        return iter(self._checks.values())

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, name: object) -> bool:
        return name in self._checks


def default_registry() -> CheckRegistry:
    """Registry of the checks shipped with the engine."""
    from ensembl_healthcheck.checks.catalog import DEFAULT_CHECKS

    return CheckRegistry(DEFAULT_CHECKS)
