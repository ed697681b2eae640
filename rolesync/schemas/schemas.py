"""Pydantic schemas for decoded attributes and run reports."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum


# ---- Decoded attributes ----
class EntitlementRef(BaseModel):
    """nrfEntitlementRef split into driver, status and the embedded <ref> XML."""
    driver: str = ""
    status: str = ""
    xml: str = ""
    xml_src: str = ""
    xml_id: str = ""
    param_id: str = ""
    param_id2: str = ""
    param_id3: str = ""


# ---- Run reports ----
class SyncStatus(str, Enum):
    success = "success"
    failed = "failed"
    skipped = "skipped"


class SyncResult(BaseModel):
    entity: str
    status: SyncStatus = SyncStatus.success
    fetched: int = 0
    upserted: int = 0
    relations: int = 0
    error: Optional[str] = None


class LifecycleReport(BaseModel):
    marked: Dict[str, int] = Field(default_factory=dict)
    purged: Dict[str, int] = Field(default_factory=dict)
    skipped_tables: List[str] = Field(default_factory=list)
    failed_tables: List[str] = Field(default_factory=list)


class RunReport(BaseModel):
    watermark: datetime
    retention_days: int
    results: List[SyncResult] = Field(default_factory=list)
    lifecycle: Optional[LifecycleReport] = None
    duration_ms: Optional[int] = None

    @property
    def failed_entities(self) -> List[str]:
        return [r.entity for r in self.results if r.status != SyncStatus.success]
