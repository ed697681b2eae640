"""Role synchronizer: upserts roles and rebuilds the parent/child relation."""

import logging
from typing import Dict, Any, List

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rolesync.connectors.base import DirectoryEntry
from rolesync.connectors.ldap import ROLES_SEARCH
from rolesync.core.exceptions import SyncError
from rolesync.db.upsert import insert_ignore_statement
from rolesync.models.role import VizRole, VizRoleParent
from rolesync.services.decoders import localized_json, join_values
from rolesync.services.sync_base import EntitySynchronizer

logger = logging.getLogger(__name__)

PARENT_ATTRIBUTE = "nrfParentRoles"


class RoleSynchronizer(EntitySynchronizer):
    """Two phases in one transaction.

    Phase 1 upserts every role. Phase 2 deletes the whole parent relation and
    re-inserts one edge per ``nrfParentRoles`` value. Phase 2 relies on phase 1
    having written every role first: an edge pointing at a DN that is not in
    ``viz_roles`` fails its foreign key and the entire role run rolls back.
    """

    entity = "roles"
    table = VizRole.__table__
    default_search = ROLES_SEARCH

    def build_row(self, entry: DirectoryEntry) -> Dict[str, Any]:
        return {
            "nrfrolelevel": entry.get_value("nrfRoleLevel"),
            "nrflocalizednames": localized_json(entry.get_value("nrfLocalizedNames")),
            "nrflocalizeddescrs": localized_json(entry.get_value("nrfLocalizedDescrs")),
            "nrfrolecategorykey": join_values(entry.get_values("nrfRoleCategoryKey")),
        }

    def write(self, session, entries, watermark) -> int:
        logger.info("Phase 1: upserting roles into viz_roles...")
        count = super().write(session, entries, watermark)
        logger.info("Phase 1 complete: %d roles upserted", count)
        return count

    def after_upsert(self, session: Session, entries: List[DirectoryEntry]) -> int:
        logger.info("Phase 2: rebuilding parent relations in viz_roles_parents...")
        try:
            session.execute(delete(VizRoleParent.__table__))
        except SQLAlchemyError as e:
            raise SyncError(f"Deleting old role relations failed: {e}", self.entity) from e

        edges = 0
        for child_dn, parent_dn in parent_edges(entries):
            try:
                session.execute(
                    insert_ignore_statement(
                        session,
                        VizRoleParent.__table__,
                        {"child_dn": child_dn, "parent_dn": parent_dn},
                    )
                )
            except SQLAlchemyError as e:
                logger.error(
                    "Inserting parent relation %s -> %s failed: %s", child_dn, parent_dn, e
                )
                raise SyncError(
                    f"Inserting parent relation for {child_dn} failed (parent {parent_dn})",
                    self.entity,
                    child_dn,
                ) from e
            edges += 1
        logger.info("Phase 2 complete: %d parent relations inserted", edges)
        return edges


def parent_edges(entries: List[DirectoryEntry]) -> List[tuple]:
    """(child_dn, parent_dn) pairs in directory order, duplicates removed."""
    seen = set()
    edges = []
    for entry in entries:
        for parent_dn in entry.get_values(PARENT_ATTRIBUTE):
            if not parent_dn:
                continue
            edge = (entry.dn, parent_dn)
            if edge in seen:
                continue
            seen.add(edge)
            edges.append(edge)
    return edges
