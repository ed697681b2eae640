"""Role-resource association model."""

from sqlalchemy import Column, Text, Boolean, DateTime, func, false
from rolesync.db.base import Base


class VizRoleResource(Base):
    """Role-to-resource association (nrfResourceAssociation).

    Keyed by the association entry's own DN. The role and resource DNs are
    informational and carry no foreign keys.
    """
    __tablename__ = "viz_roles_resources"

    dn = Column(Text, primary_key=True)
    nrfrole = Column(Text, nullable=True)
    nrfresource = Column(Text, nullable=True)
    nrfdynamicparmvals = Column(Text, nullable=True)  # raw <parameter> XML
    nrfdynamicparmvals_value_json = Column(Text, nullable=True)
    nrfstatus = Column(Text, nullable=True)
    createtimestamp = Column(Text, nullable=True)  # directory generalized time, opaque
    modifytimestamp = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    is_deleted = Column(Boolean, default=False, server_default=false())
