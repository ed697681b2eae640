"""Models package. Import all models so create_all can discover them."""

from rolesync.models.role import VizRole, VizRoleParent
from rolesync.models.resource import VizResource
from rolesync.models.association import VizRoleResource

# Tables carrying the upsert/soft-delete lifecycle, in processing order
LIFECYCLE_TABLES = (
    VizRole.__table__,
    VizResource.__table__,
    VizRoleResource.__table__,
)

__all__ = [
    "VizRole", "VizRoleParent", "VizResource", "VizRoleResource",
    "LIFECYCLE_TABLES",
]
