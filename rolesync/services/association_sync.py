"""Role-resource association synchronizer."""

from typing import Dict, Any

from rolesync.connectors.base import DirectoryEntry
from rolesync.connectors.ldap import ASSOCIATIONS_SEARCH
from rolesync.models.association import VizRoleResource
from rolesync.services.decoders import decode_dynamic_parm_vals
from rolesync.services.sync_base import EntitySynchronizer


class AssociationSynchronizer(EntitySynchronizer):
    """Upserts associations keyed by their own DN.

    The raw nrfDynamicParmVals XML is kept next to the JSON extracted from it.
    """

    entity = "associations"
    table = VizRoleResource.__table__
    default_search = ASSOCIATIONS_SEARCH

    def build_row(self, entry: DirectoryEntry) -> Dict[str, Any]:
        raw_params = entry.get_value("nrfDynamicParmVals")
        return {
            "nrfrole": entry.get_value("nrfRole"),
            "nrfresource": entry.get_value("nrfResource"),
            "nrfdynamicparmvals": raw_params,
            "nrfdynamicparmvals_value_json": decode_dynamic_parm_vals(raw_params),
            "nrfstatus": entry.get_value("nrfStatus"),
            "createtimestamp": entry.get_value("createTimestamp"),
            "modifytimestamp": entry.get_value("modifyTimestamp"),
        }
