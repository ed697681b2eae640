"""Role and role hierarchy models."""

from sqlalchemy import Column, Text, Boolean, DateTime, ForeignKey, func, false
from rolesync.db.base import Base


class VizRole(Base):
    """Directory role (nrfRole), keyed by its distinguished name."""
    __tablename__ = "viz_roles"

    dn = Column(Text, primary_key=True)
    nrfrolelevel = Column(Text, nullable=True)
    nrflocalizednames = Column(Text, nullable=True)  # JSON object lang -> name
    nrflocalizeddescrs = Column(Text, nullable=True)  # JSON object lang -> description
    nrfrolecategorykey = Column(Text, nullable=True)  # "|"-joined category keys
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    is_deleted = Column(Boolean, default=False, server_default=false())


class VizRoleParent(Base):
    """Parent/child edge between two roles, rebuilt on every role sync."""
    __tablename__ = "viz_roles_parents"

    child_dn = Column(
        Text, ForeignKey("viz_roles.dn", ondelete="CASCADE"), primary_key=True
    )
    parent_dn = Column(
        Text, ForeignKey("viz_roles.dn", ondelete="CASCADE"), primary_key=True
    )
