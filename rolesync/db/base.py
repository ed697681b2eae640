"""Declarative base for all reconciliation tables."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
