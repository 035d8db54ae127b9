"""Azure Active Directory commands."""

from tenantcli.commands.aad import app_add, app_get, sp_get

DESCRIPTORS = (app_add.descriptor, app_get.descriptor, sp_get.descriptor)
