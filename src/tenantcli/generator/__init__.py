"""CLI generator -- turn the command registry into a Typer application.

Sub-modules:

* :mod:`~tenantcli.generator.param_mapper` -- Map declared options to
  Typer ``--option`` flags with completion hints.
* :mod:`~tenantcli.generator.command_tree` -- Build the nested sub-app tree
  and attach leaf commands with dynamically generated signatures.
"""

from tenantcli.generator.command_tree import build_command_tree

__all__ = ["build_command_tree"]
