"""SharePoint Online commands."""

from tenantcli.commands.spo import eventreceiver_remove, feature_list, site_inplacerecordsmanagement_set

DESCRIPTORS = (
    eventreceiver_remove.descriptor,
    feature_list.descriptor,
    site_inplacerecordsmanagement_set.descriptor,
)
