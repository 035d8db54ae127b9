"""Option-set enforcement -- "exactly one of" groups.

An :class:`~tenantcli.models.OptionSet` lists options of which exactly one
must be supplied. :class:`OptionSetEnforcer` checks every set of a command
independently, before any validator runs, and reports the first violation.
"""

from __future__ import annotations

from typing import Optional, Sequence

from tenantcli.framework.options import ResolvedOptions
from tenantcli.models import OptionSet


def check_option_set(option_set: OptionSet, options: ResolvedOptions) -> Optional[str]:
    """Return a failure message if *options* does not satisfy *option_set*."""
    members = ", ".join(option_set.members)
    present = [name for name in option_set.members if options.is_set(name)]
    if not present:
        return f"Specify one of: {members}"
    if len(present) > 1:
        return f"Specify one of {members} but not multiple"
    return None


class OptionSetEnforcer:
    """Checks all option sets declared on a command."""

    def __init__(self, option_sets: Sequence[OptionSet]) -> None:
        self._option_sets = tuple(option_sets)

    def check(self, options: ResolvedOptions) -> Optional[str]:
        for option_set in self._option_sets:
            failure = check_option_set(option_set, options)
            if failure is not None:
                return failure
        return None
