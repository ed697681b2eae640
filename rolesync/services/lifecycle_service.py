"""Lifecycle service: soft-delete stale rows and purge expired ones.

Every row moves through live -> soft-deleted -> purged. Staleness is decided
only by comparing ``updated_at`` with the run watermark: synchronizers stamp
every row they see with the watermark, so anything older was not seen.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Sequence

from sqlalchemy import Table, update, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rolesync.models import LIFECYCLE_TABLES
from rolesync.schemas.schemas import LifecycleReport

logger = logging.getLogger(__name__)


class LifecycleService:
    """Runs the mark and purge statements, one transaction per table."""

    @staticmethod
    def mark_stale(
        session: Session,
        watermark: datetime,
        tables: Sequence[Table] = LIFECYCLE_TABLES,
        failed: Optional[list] = None,
    ) -> Dict[str, int]:
        """Flag every row not touched in this run as deleted.

        Rows that are already soft-deleted are flagged again, which is a no-op.
        """
        logger.info("Marking stale records as deleted...")
        marked: Dict[str, int] = {}
        for table in tables:
            stmt = (
                update(table)
                .where(table.c.updated_at < watermark)
                .values(is_deleted=True)
            )
            try:
                result = session.execute(stmt)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Marking records in table %s failed: %s", table.name, e)
                if failed is not None:
                    failed.append(table.name)
                continue
            marked[table.name] = result.rowcount or 0
            logger.info("Table %s: %d records marked as deleted", table.name, marked[table.name])
        return marked

    @staticmethod
    def purge_deleted(
        session: Session,
        watermark: datetime,
        retention_days: int,
        tables: Sequence[Table] = LIFECYCLE_TABLES,
        failed: Optional[list] = None,
    ) -> Dict[str, int]:
        """Delete soft-deleted rows last seen before ``watermark - retention_days``.

        Deleting a role cascades to every viz_roles_parents edge naming it,
        on either side of the edge.
        """
        cutoff = watermark - timedelta(days=retention_days)
        logger.info("Purging records deleted before %s...", cutoff.isoformat())
        purged: Dict[str, int] = {}
        for table in tables:
            stmt = delete(table).where(
                table.c.is_deleted == True,  # noqa: E712
                table.c.updated_at < cutoff,
            )
            try:
                result = session.execute(stmt)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Purging records in table %s failed: %s", table.name, e)
                if failed is not None:
                    failed.append(table.name)
                continue
            purged[table.name] = result.rowcount or 0
            logger.info("Table %s: %d old records purged", table.name, purged[table.name])
        return purged

    @staticmethod
    def run(
        session: Session,
        watermark: datetime,
        retention_days: int,
        skip_tables: Iterable[str] = (),
    ) -> LifecycleReport:
        """Purge, then mark.

        Purging first means a row changes state at most once per run: a row
        that goes stale is soft-deleted in this run and only becomes eligible
        for purging in a later one.
        """
        skip = set(skip_tables)
        tables = [t for t in LIFECYCLE_TABLES if t.name not in skip]
        report = LifecycleReport(skipped_tables=sorted(skip))
        if skip:
            logger.warning("Lifecycle pass leaves tables untouched: %s", ", ".join(sorted(skip)))

        failed: list = []
        report.purged = LifecycleService.purge_deleted(
            session, watermark, retention_days, tables, failed
        )
        report.marked = LifecycleService.mark_stale(session, watermark, tables, failed)
        report.failed_tables = sorted(set(failed))
        return report


lifecycle_service = LifecycleService()
