"""Debug dumps of the raw directory entries fetched for an entity type."""

import json
import logging
import os
from typing import List, Optional

from rolesync.connectors.base import DirectoryEntry

logger = logging.getLogger(__name__)


def dump_entries(
    dump_dir: Optional[str], entity: str, entries: List[DirectoryEntry]
) -> Optional[str]:
    """Write ``<entity>_raw_data.json`` into ``dump_dir``.

    Does nothing when no directory is configured. Write failures are logged
    and never interrupt the synchronization.
    """
    if not dump_dir:
        return None
    path = os.path.join(dump_dir, f"{entity}_raw_data.json")
    try:
        os.makedirs(dump_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump([e.to_dict() for e in entries], f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.warning("Could not write debug dump %s: %s", path, e)
        return None
    logger.info("Raw LDAP data written to %s", path)
    return path
