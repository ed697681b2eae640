"""Resource synchronizer with entitlement reference decoding."""

from typing import Dict, Any

from rolesync.connectors.base import DirectoryEntry
from rolesync.connectors.ldap import RESOURCES_SEARCH
from rolesync.models.resource import VizResource
from rolesync.services.decoders import localized_json, decode_entitlement_ref
from rolesync.services.sync_base import EntitySynchronizer


class ResourceSynchronizer(EntitySynchronizer):
    """Upserts resources; nrfEntitlementRef is split into the entitlement_* columns."""

    entity = "resources"
    table = VizResource.__table__
    default_search = RESOURCES_SEARCH

    def build_row(self, entry: DirectoryEntry) -> Dict[str, Any]:
        ref = decode_entitlement_ref(entry.get_value("nrfEntitlementRef"))
        return {
            "nrflocalizednames": localized_json(entry.get_value("nrfLocalizedNames")),
            "nrflocalizeddescrs": localized_json(entry.get_value("nrfLocalizedDescrs")),
            "nrfcategorykey": entry.get_value("nrfCategoryKey"),
            "nrfallowmulti": entry.get_value("nrfAllowMulti"),
            "entitlement_driver": ref.driver,
            "entitlement_status": ref.status,
            "entitlement_xml": ref.xml,
            "entitlement_xml_src": ref.xml_src,
            "entitlement_xml_id": ref.xml_id,
            "entitlement_xml_param_id": ref.param_id,
            "entitlement_xml_param_id2": ref.param_id2,
            "entitlement_xml_param_id3": ref.param_id3,
        }
