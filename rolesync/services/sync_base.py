"""Shared fetch-decode-upsert flow for the entity synchronizers."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Any, List, Optional

from sqlalchemy import Table
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rolesync.connectors.base import DirectoryReader, DirectoryEntry, SearchSpec
from rolesync.core.exceptions import DirectorySearchError, StoreError, SyncError
from rolesync.db.upsert import upsert_statement
from rolesync.schemas.schemas import SyncResult, SyncStatus
from rolesync.services.raw_dump import dump_entries

logger = logging.getLogger(__name__)


class EntitySynchronizer(ABC):
    """Synchronizes one directory entity type into its table.

    A run fetches every entry with the entity's search, then upserts all rows
    inside a single transaction stamped with the run watermark. A failed
    search skips the entity without touching the table; a failed row rolls
    back everything written for the entity in this run.
    """

    entity: str = ""
    table: Table
    default_search: SearchSpec

    def __init__(self, search: Optional[SearchSpec] = None, dump_dir: Optional[str] = None):
        self.search = search or self.default_search
        self.dump_dir = dump_dir

    @abstractmethod
    def build_row(self, entry: DirectoryEntry) -> Dict[str, Any]:
        """Decoded column values for one entry, without key and lifecycle columns."""
        ...

    def after_upsert(self, session: Session, entries: List[DirectoryEntry]) -> int:
        """Extra work inside the same transaction; returns a relation count."""
        return 0

    def fetch(self, reader: DirectoryReader) -> List[DirectoryEntry]:
        return reader.run_search(self.search)

    def sync(
        self, session: Session, reader: DirectoryReader, watermark: datetime
    ) -> SyncResult:
        result = SyncResult(entity=self.entity)
        logger.info("Synchronizing %s...", self.entity)

        try:
            entries = self.fetch(reader)
        except DirectorySearchError as e:
            logger.error("Fetching %s failed, skipping this entity: %s", self.entity, e.message)
            result.status = SyncStatus.skipped
            result.error = e.message
            return result

        result.fetched = len(entries)
        logger.info("Found %s: %d", self.entity, len(entries))
        dump_entries(self.dump_dir, self.entity, entries)

        try:
            result.upserted = self.write(session, entries, watermark)
            result.relations = self.after_upsert(session, entries)
            session.commit()
        except (SyncError, StoreError) as e:
            return self._rolled_back(session, result, e.message)
        except SQLAlchemyError as e:
            return self._rolled_back(session, result, f"Writing {self.entity} failed: {e}")

        logger.info(
            "%s synchronization complete: %d upserted, %d relations",
            self.entity.capitalize(),
            result.upserted,
            result.relations,
        )
        return result

    def _rolled_back(self, session: Session, result: SyncResult, message: str) -> SyncResult:
        session.rollback()
        logger.error("Synchronizing %s rolled back: %s", self.entity, message)
        result.status = SyncStatus.failed
        result.error = message
        result.upserted = 0
        result.relations = 0
        return result

    def write(
        self, session: Session, entries: List[DirectoryEntry], watermark: datetime
    ) -> int:
        for entry in entries:
            row = self.build_row(entry)
            row.update(
                dn=entry.dn,
                created_at=watermark,
                updated_at=watermark,
                is_deleted=False,
            )
            try:
                session.execute(upsert_statement(session, self.table, row))
            except SQLAlchemyError as e:
                logger.error("Inserting %s %s failed: %s", self.entity, entry.dn, e)
                raise SyncError(
                    f"Inserting {self.entity} {entry.dn} failed", self.entity, entry.dn
                ) from e
        return len(entries)
