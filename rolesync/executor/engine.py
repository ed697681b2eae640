"""Reconciliation run orchestrator."""

import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from rolesync.connectors.base import DirectoryReader, SearchSpec
from rolesync.connectors.ldap import ROLES_SEARCH, RESOURCES_SEARCH, ASSOCIATIONS_SEARCH
from rolesync.core.config import Settings, DEFAULT_PURGE_AGE_IN_DAYS
from rolesync.core.exceptions import DirectorySearchError
from rolesync.models import VizRole, VizResource, VizRoleResource
from rolesync.schemas.schemas import RunReport
from rolesync.services.association_sync import AssociationSynchronizer
from rolesync.services.lifecycle_service import lifecycle_service
from rolesync.services.resource_sync import ResourceSynchronizer
from rolesync.services.role_sync import RoleSynchronizer
from rolesync.services.sync_base import EntitySynchronizer

logger = logging.getLogger(__name__)

# Lifecycle table owned by each entity type
ENTITY_TABLES = {
    "roles": VizRole.__tablename__,
    "resources": VizResource.__tablename__,
    "associations": VizRoleResource.__tablename__,
}


class ReconciliationRunner:
    """Runs one reconciliation pass: roles, resources, associations, lifecycle.

    The watermark is captured once per run and passed explicitly to every
    synchronizer and to the lifecycle pass. Entity types run strictly in
    sequence, each in its own session and transaction.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker],
        reader: DirectoryReader,
        retention_days: int = DEFAULT_PURGE_AGE_IN_DAYS,
        skip_failed_lifecycle: bool = False,
        dump_dir: Optional[str] = None,
        search_bases: Optional[Dict[str, str]] = None,
    ):
        self.session_factory = session_factory
        self.reader = reader
        self.retention_days = retention_days
        self.skip_failed_lifecycle = skip_failed_lifecycle
        bases = search_bases or {}
        self.synchronizers: List[EntitySynchronizer] = [
            RoleSynchronizer(ROLES_SEARCH.with_base(bases.get("roles")), dump_dir),
            ResourceSynchronizer(RESOURCES_SEARCH.with_base(bases.get("resources")), dump_dir),
            AssociationSynchronizer(
                ASSOCIATIONS_SEARCH.with_base(bases.get("associations")), dump_dir
            ),
        ]

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: Optional[sessionmaker],
        reader: DirectoryReader,
    ) -> "ReconciliationRunner":
        return cls(
            session_factory,
            reader,
            retention_days=settings.PURGE_AGE_IN_DAYS,
            skip_failed_lifecycle=settings.LIFECYCLE_SKIP_FAILED,
            dump_dir=settings.RAW_DUMP_DIR,
            search_bases={
                "roles": settings.ROLES_SEARCH_BASE,
                "resources": settings.RESOURCES_SEARCH_BASE,
                "associations": settings.ASSOCIATIONS_SEARCH_BASE,
            },
        )

    @property
    def searches(self) -> List[SearchSpec]:
        return [s.search for s in self.synchronizers]

    def execute(self, watermark: Optional[datetime] = None) -> RunReport:
        """Synchronize every entity type, then run the lifecycle pass."""
        if self.session_factory is None:
            raise RuntimeError("execute() needs a database session factory")

        watermark = watermark or datetime.now(timezone.utc)
        started = time.monotonic()
        report = RunReport(watermark=watermark, retention_days=self.retention_days)
        logger.info("Starting reconciliation run, watermark %s", watermark.isoformat())

        for synchronizer in self.synchronizers:
            db = self.session_factory()
            try:
                report.results.append(synchronizer.sync(db, self.reader, watermark))
            finally:
                db.close()

        failed = report.failed_entities
        skip_tables: List[str] = []
        if failed:
            logger.warning(
                "Not synchronized in this run: %s. Their rows will be soft-deleted "
                "unless LIFECYCLE_SKIP_FAILED is set.",
                ", ".join(failed),
            )
            if self.skip_failed_lifecycle:
                skip_tables = [ENTITY_TABLES[name] for name in failed]

        db = self.session_factory()
        try:
            report.lifecycle = lifecycle_service.run(
                db, watermark, self.retention_days, skip_tables=skip_tables
            )
        finally:
            db.close()

        report.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info("Reconciliation run finished in %d ms", report.duration_ms)
        return report

    def count_only(self) -> Dict[str, Optional[int]]:
        """Dry run: count the entries of each search without touching the store."""
        counts: Dict[str, Optional[int]] = {}
        for spec in self.searches:
            logger.info("Counting %s...", spec.name)
            try:
                entries = self.reader.search(spec.base, spec.search_filter, ["objectClass"])
            except DirectorySearchError as e:
                logger.error("Counting %s failed: %s", spec.name, e.message)
                counts[spec.name] = None
                continue
            counts[spec.name] = len(entries)
            logger.info("Number of %s found: %d", spec.name, len(entries))
        return counts
