"""Built-in commands.

Service commands (``aad``, ``teams``, ``spo``) are declared as
:class:`~tenantcli.framework.CommandDescriptor` objects and collected into
the process-wide registry by :func:`build_registry`. The ``config`` group
is a plain Typer sub-app (see :mod:`tenantcli.commands.config`).
"""

from __future__ import annotations

from tenantcli.framework import CommandRegistry

GROUP_HELP: dict[tuple[str, ...], str] = {
    ("aad",): "Manage Azure Active Directory.",
    ("aad", "app"): "Manage Azure AD app registrations.",
    ("aad", "sp"): "Manage Azure AD service principals.",
    ("teams",): "Manage Microsoft Teams.",
    ("teams", "team"): "Manage teams.",
    ("teams", "channel"): "Manage team channels.",
    ("spo",): "Manage SharePoint Online.",
    ("spo", "feature"): "Manage site and web features.",
    ("spo", "site"): "Manage site collections.",
    ("spo", "site", "inplacerecordsmanagement"): "Manage in-place records management.",
    ("spo", "eventreceiver"): "Manage event receivers.",
}


def build_registry() -> CommandRegistry:
    """Register every built-in service command and freeze the registry."""
    from tenantcli.commands import aad, spo, teams

    registry = CommandRegistry()
    for package in (aad, teams, spo):
        for descriptor in package.DESCRIPTORS:
            registry.register(descriptor)
    return registry.freeze()
