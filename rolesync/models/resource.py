"""Resource model with decoded entitlement reference columns."""

from sqlalchemy import Column, Text, Boolean, DateTime, func, false
from rolesync.db.base import Base


class VizResource(Base):
    """Directory resource (nrfResource), keyed by its distinguished name."""
    __tablename__ = "viz_resources"

    dn = Column(Text, primary_key=True)
    nrflocalizednames = Column(Text, nullable=True)
    nrflocalizeddescrs = Column(Text, nullable=True)
    nrfcategorykey = Column(Text, nullable=True)
    nrfallowmulti = Column(Text, nullable=True)
    # Decoded from nrfEntitlementRef: driver#status#<ref>...</ref>
    entitlement_driver = Column(Text, nullable=True)
    entitlement_status = Column(Text, nullable=True)
    entitlement_xml = Column(Text, nullable=True)
    entitlement_xml_src = Column(Text, nullable=True)
    entitlement_xml_id = Column(Text, nullable=True)
    entitlement_xml_param_id = Column(Text, nullable=True)
    entitlement_xml_param_id2 = Column(Text, nullable=True)
    entitlement_xml_param_id3 = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    is_deleted = Column(Boolean, default=False, server_default=false())
