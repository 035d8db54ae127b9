"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to one kind of normalised error and is referenced by the
corresponding :class:`~tenantcli.exceptions.TenantCliError` subclass.
External tooling (CI scripts, shell wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ tenantcli aad sp get --displayName "Contoso App"
    $ echo $?
    4   # EXIT_AMBIGUOUS_MATCH -- more than one service principal matched
"""

EXIT_SUCCESS = 0
"""The command completed successfully (including a declined confirmation)."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (configuration problems, crashes)."""

EXIT_VALIDATION_FAILURE = 2
"""Option parsing, option-set enforcement, or a validator rejected the input."""

EXIT_NOT_FOUND = 3
"""A lookup by identifier or name returned no matches."""

EXIT_AMBIGUOUS_MATCH = 4
"""A lookup by identifier or name returned more than one match."""

EXIT_REMOTE_REQUEST_FAILURE = 5
"""The remote service returned an error, or the request could not be sent."""
