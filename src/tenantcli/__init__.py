"""tenantcli -- Manage identity, collaboration, and content services from the command line.

Every command is a thin translation layer from command-line flags to calls
against a remote REST service. The commands share one execution framework
(:mod:`tenantcli.framework`) that owns option parsing, option-set
enforcement, validation, telemetry, confirmation of destructive actions,
and error normalisation.

Typical usage::

    tenantcli aad sp get --displayName "Contoso App"
    tenantcli teams team remove --id 00000000-0000-0000-0000-000000000000 --confirm

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration management.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting system with Rich support.
    registration: Local app registration file (read-merge-write).
"""

__version__ = "0.3.0"
